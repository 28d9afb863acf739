"""
Shared fixtures: a fake MKVToolNix (plus subcleaner/ffsubsync) behind
subprocess.run.

A fake "container" is a JSON file holding its track list, so shutil.copy2,
os.replace and friends carry its state exactly like a real file. The fake
identify output prints uids as bare 64-bit numbers, like mkvmerge does.
"""

import itertools
import json
import os
import subprocess
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from submux.config import _DEFAULTS, get_settings
from submux.logs_utils import register_main_push_log

# Above 2**53: a float round-trip would corrupt these
UID_BASE = 18446744073709551000

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
Hello there.

2
00:00:04,000 --> 00:00:06,000
General Kenobi.

3
00:00:07,000 --> 00:00:09,000
You are a bold one.
"""


def video(name: Optional[str] = None) -> dict:
    return {"type": "video", "language": "und", "default": True, "forced": False, "name": name}


def audio(language: str, default: bool = False, forced: bool = False, name: Optional[str] = None) -> dict:
    return {"type": "audio", "language": language, "default": default, "forced": forced, "name": name}


def subtitle(language: str, default: bool = False, forced: bool = False, name: Optional[str] = None) -> dict:
    return {"type": "subtitles", "language": language, "default": default, "forced": forced, "name": name}


class FakeMKVToolNix:
    """Stands in for subprocess.run when the command is one of our tools."""

    def __init__(self):
        self.calls: List[List[str]] = []
        # operation -> forced exit code ("identify", "remux", "merge", "propedit",
        # "subcleaner", "ffsubsync")
        self.exit_codes: Dict[str, int] = {}
        self.timeouts = set()
        self.missing_tools = set()
        self.ignore_edits = False
        self.keep_removed_tracks = False
        self._uids = itertools.count(UID_BASE)
        self._lock = threading.Lock()

    # === container helpers used by tests ===

    def make_container(self, path: Path, tracks: List[dict]) -> Path:
        stored = []
        for track in tracks:
            entry = dict(track)
            entry.setdefault("uid", next(self._uids))
            stored.append(entry)
        self._write(path, stored)
        return path

    def tracks(self, path: Path) -> List[dict]:
        return json.loads(Path(path).read_text())["tracks"]

    def calls_for(self, operation: str) -> List[List[str]]:
        return [cmd for cmd in self.calls if self._operation(cmd) == operation]

    @staticmethod
    def _write(path: Path, tracks: List[dict]) -> None:
        Path(path).write_text(json.dumps({"tracks": tracks}, indent=1))

    # === subprocess.run replacement ===

    @staticmethod
    def _operation(cmd: List[str]) -> str:
        tool = os.path.basename(cmd[0])
        if tool == "mkvmerge":
            if "-J" in cmd:
                return "identify"
            return "remux" if "-s" in cmd else "merge"
        if tool == "mkvpropedit":
            return "propedit"
        return tool

    def run(self, cmd, capture_output=False, text=False, timeout=None, **kwargs):
        cmd = [str(part) for part in cmd]
        operation = self._operation(cmd)
        with self._lock:
            self.calls.append(cmd)

        if operation in self.missing_tools:
            raise FileNotFoundError(2, "No such file or directory", cmd[0])
        if operation in self.timeouts:
            raise subprocess.TimeoutExpired(cmd, timeout)
        code = self.exit_codes.get(operation, 0)
        if code:
            return subprocess.CompletedProcess(
                cmd, code, stdout="", stderr=f"Error: forced {operation} failure"
            )

        handler = getattr(self, f"_do_{operation}", None)
        if handler is None:
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")
        return handler(cmd)

    def _do_identify(self, cmd):
        path = Path(cmd[-1])
        try:
            tracks = self.tracks(path)
        except (OSError, ValueError):
            return subprocess.CompletedProcess(
                cmd, 2, stdout="", stderr=f"Error: The file '{path}' could not be opened"
            )

        out = []
        for index, track in enumerate(tracks):
            properties = {
                "language": track["language"],
                "default_track": track["default"],
                "forced_track": track["forced"],
            }
            # uid=None stands for a non-Matroska input
            if track["uid"] is not None:
                properties["uid"] = track["uid"]
            if track.get("name"):
                properties["track_name"] = track["name"]
            out.append({"id": index, "type": track["type"], "properties": properties})
        return subprocess.CompletedProcess(
            cmd, 0, stdout=json.dumps({"tracks": out}), stderr=""
        )

    def _do_remux(self, cmd):
        output = Path(cmd[cmd.index("-o") + 1])
        selection = cmd[cmd.index("-s") + 1]
        source = Path(cmd[-1])
        excluded = {int(i) for i in selection.lstrip("!").split(",") if i}

        tracks = self.tracks(source)
        if not self.keep_removed_tracks:
            tracks = [
                t for i, t in enumerate(tracks)
                if not (t["type"] == "subtitles" and i in excluded)
            ]
        self._write(output, tracks)
        return subprocess.CompletedProcess(cmd, 0, stdout="Done.", stderr="")

    def _do_merge(self, cmd):
        output = Path(cmd[cmd.index("-o") + 1])
        source = Path(cmd[3])
        language = cmd[cmd.index("--language") + 1].split(":", 1)[1]
        name = cmd[cmd.index("--track-name") + 1].split(":", 1)[1]

        tracks = self.tracks(source)
        tracks.append(
            {
                "type": "subtitles",
                "language": language,
                "default": True,
                "forced": True,
                "name": name,
                "uid": next(self._uids),
            }
        )
        self._write(output, tracks)
        return subprocess.CompletedProcess(cmd, 0, stdout="Done.", stderr="")

    def _do_propedit(self, cmd):
        path = Path(cmd[1])
        uid = int(cmd[cmd.index("--edit") + 1].split("track:=", 1)[1])
        tracks = self.tracks(path)
        target = next((t for t in tracks if t["uid"] == uid), None)
        if target is None:
            return subprocess.CompletedProcess(
                cmd, 2, stdout="", stderr=f"Error: No track with the UID {uid}"
            )
        if self.ignore_edits:
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        for i, part in enumerate(cmd):
            if part != "--set":
                continue
            key, _, value = cmd[i + 1].partition("=")
            if key == "flag-default":
                target["default"] = value == "1"
            elif key == "flag-forced":
                target["forced"] = value == "1"
            elif key == "name":
                target["name"] = value or None
        self._write(path, tracks)
        return subprocess.CompletedProcess(cmd, 0, stdout="Done.", stderr="")


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Every test starts from the defaults, never from a developer's .env"""
    for key in _DEFAULTS:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    register_main_push_log(None)


@pytest.fixture
def fake_mkv(monkeypatch):
    fake = FakeMKVToolNix()
    monkeypatch.setattr(subprocess, "run", fake.run)
    return fake


@pytest.fixture
def logs():
    captured: List[str] = []
    register_main_push_log(captured.append)
    yield captured
    register_main_push_log(None)


@pytest.fixture
def srt_file(tmp_path):
    def _make(name: str = "Movie.2010.srt", content: str = SAMPLE_SRT, folder: Path = None) -> Path:
        path = (folder or tmp_path) / name
        path.write_text(content, encoding="utf-8")
        return path

    return _make
