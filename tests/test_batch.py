"""
Tests for the batch driver: matching, renaming, job isolation and the
folder-wide maintenance commands.
"""

import subprocess

import pytest

import submux.batch as batch
from submux.batch import (
    adjust_flags_in_folder,
    process_folder,
    process_library,
    remove_language_in_folder,
)
from submux.errors import FileIntegrityError, UnknownLanguageError
from submux.flag_normalizer import FlagNormalizer
from submux.pipeline import JobOptions, PipelineState

from conftest import audio, subtitle, video

NO_PREP = JobOptions(should_convert=False, should_clean=False, should_sync=False)


@pytest.fixture
def show_folder(tmp_path, fake_mkv, srt_file):
    """Two episodes with Persian subtitles in a separate folder"""
    subs = tmp_path / "subs"
    videos = tmp_path / "videos"
    subs.mkdir()
    videos.mkdir()
    for episode in ("01", "02"):
        fake_mkv.make_container(
            videos / f"Dark.S01E{episode}.1080p.mkv",
            [video(), audio("eng", True, True), subtitle("eng", True, True)],
        )
        srt_file(f"Dark.S01E{episode}.fa.srt", folder=subs)
    return subs, videos


class TestProcessFolder:
    """Matched pairs through the pipeline"""

    def test_every_pair_is_processed(self, show_folder, fake_mkv):
        subs, videos = show_folder

        report = process_folder(subs, videos, "Persian", "English", NO_PREP)

        assert report.all_succeeded
        assert len(report.outcomes) == 2
        assert report.changed_count == 2
        assert [o.state for o in report.outcomes] == [PipelineState.DONE] * 2
        for episode in ("01", "02"):
            tracks = fake_mkv.tracks(videos / f"Dark.S01E{episode}.1080p.mkv")
            assert tracks[-1]["language"] == "per" and tracks[-1]["default"] is True
            assert tracks[2]["default"] is False
        # Renamed to the video stem, then consumed by the merge
        assert list(subs.iterdir()) == []

    def test_keep_subtitle_leaves_renamed_file(self, show_folder):
        subs, videos = show_folder
        options = JobOptions(
            should_convert=False, should_clean=False, should_sync=False, keep_subtitle_file=True
        )

        process_folder(subs, videos, "Persian", "English", options)

        assert sorted(p.name for p in subs.iterdir()) == [
            "Dark.S01E01.1080p.srt",
            "Dark.S01E02.1080p.srt",
        ]

    def test_one_failure_does_not_stop_the_batch(self, show_folder, fake_mkv):
        subs, videos = show_folder
        # No English audio in episode 1: its flag stage fails
        fake_mkv.make_container(
            videos / "Dark.S01E01.1080p.mkv", [video(), audio("ger", True, True)]
        )

        report = process_folder(subs, videos, "Persian", "English", NO_PREP)

        first, second = report.outcomes
        assert first.succeeded is False
        assert first.state is PipelineState.FAILED
        assert first.changed is True  # merged before the flag stage failed
        assert second.succeeded is True
        assert not report.all_succeeded

    def test_parallel_jobs(self, show_folder, fake_mkv):
        subs, videos = show_folder

        report = process_folder(subs, videos, "Persian", "English", NO_PREP, max_workers=2)

        assert report.all_succeeded
        assert len(report.outcomes) == 2

    def test_unknown_language_fails_fast(self, show_folder, fake_mkv):
        subs, videos = show_folder

        with pytest.raises(UnknownLanguageError):
            process_folder(subs, videos, "persian", "English", NO_PREP)
        assert fake_mkv.calls == []
        assert len(list(subs.iterdir())) == 2

    def test_rename_failure_skips_pair(self, show_folder, monkeypatch, fake_mkv):
        subs, videos = show_folder

        def failing_rename(old, new):
            raise FileIntegrityError("Safe rename failed: disk full")

        monkeypatch.setattr(batch, "safe_rename", failing_rename)

        report = process_folder(subs, videos, "Persian", "English", NO_PREP)

        assert [o.succeeded for o in report.outcomes] == [False, False]
        assert report.changed_count == 0
        assert fake_mkv.calls_for("merge") == []

    def test_unstable_file_is_skipped(self, show_folder, monkeypatch):
        subs, videos = show_folder
        monkeypatch.setenv("WAIT_FOR_STABLE_FILES", "true")
        batch.get_settings.cache_clear()
        waited = []

        def fake_wait(path, timeout=3.0):
            waited.append(path.name)
            if path.name.startswith("Dark.S01E01"):
                raise FileIntegrityError(f"File {path} did not stabilize within {timeout}s")

        monkeypatch.setattr(batch, "wait_for_file_to_stabilize", fake_wait)

        report = process_folder(subs, videos, "Persian", "English", NO_PREP)

        assert [o.succeeded for o in report.outcomes] == [False, True]
        assert "did not stabilize" in report.outcomes[0].message
        assert "Dark.S01E02.1080p.srt" in waited

    def test_second_subtitle_for_same_video_is_skipped(self, tmp_path, fake_mkv, srt_file, logs):
        fake_mkv.make_container(tmp_path / "Dune.2021.mkv", [video(), audio("eng")])
        srt_file("Dune.2021.en.srt")
        srt_file("Dune.2021.fa.srt")

        report = process_folder(tmp_path, tmp_path, "Persian", "English", NO_PREP)

        assert len(report.outcomes) == 1
        assert any("Another subtitle already matched" in line for line in logs)


class TestProcessLibrary:
    """Every folder with subtitles, videos alongside"""

    def test_walks_all_folders(self, tmp_path, fake_mkv, srt_file):
        for season in ("Season 1", "Season 2"):
            folder = tmp_path / "Dark" / season
            folder.mkdir(parents=True)
            number = season[-1]
            fake_mkv.make_container(
                folder / f"Dark.S0{number}E01.mkv", [video(), audio("eng")]
            )
            srt_file(f"Dark.S0{number}E01.srt", folder=folder)

        report = process_library(tmp_path, "Persian", "English", NO_PREP)

        assert [o.path.name for o in report.outcomes] == ["Dark.S01E01.mkv", "Dark.S02E01.mkv"]
        assert report.all_succeeded


class TestMaintenanceCommands:
    """adjust flags / remove language on every .mkv of a folder"""

    def test_adjust_flags_in_folder(self, tmp_path, fake_mkv):
        for name in ("A.2001.mkv", "B.2002.mkv"):
            fake_mkv.make_container(
                tmp_path / name, [video(), audio("eng"), subtitle("per"), subtitle("eng", True)]
            )
        (tmp_path / "C.2003.mp4").write_text("not a matroska file")

        report = adjust_flags_in_folder(tmp_path, "Persian", "English")

        assert [o.path.name for o in report.outcomes] == ["A.2001.mkv", "B.2002.mkv"]
        assert report.all_succeeded
        for name in ("A.2001.mkv", "B.2002.mkv"):
            tracks = fake_mkv.tracks(tmp_path / name)
            assert [t["default"] for t in tracks[1:]] == [True, True, False]

    def test_adjust_flags_survives_undecodable_identify(self, tmp_path, fake_mkv, monkeypatch):
        for name in ("A.2001.mkv", "B.2002.mkv"):
            fake_mkv.make_container(tmp_path / name, [video(), audio("eng"), subtitle("per")])
        fake_run = fake_mkv.run

        def run(cmd, **kwargs):
            if str(cmd[-1]).endswith("A.2001.mkv"):
                raise UnicodeDecodeError("utf-8", b"\xe9", 0, 1, "invalid continuation byte")
            return fake_run(cmd, **kwargs)

        monkeypatch.setattr(subprocess, "run", run)

        report = adjust_flags_in_folder(tmp_path, "Persian", "English")

        a, b = report.outcomes
        assert a.succeeded is False
        assert b.succeeded is True

    def test_adjust_flags_error_is_recorded_per_file(self, tmp_path, fake_mkv, monkeypatch):
        for name in ("A.2001.mkv", "B.2002.mkv"):
            fake_mkv.make_container(tmp_path / name, [video(), audio("eng"), subtitle("per")])
        real_adjust = FlagNormalizer.adjust_flags

        def adjust(self):
            if self.video_path.name == "A.2001.mkv":
                raise RuntimeError("unexpected")
            return real_adjust(self)

        monkeypatch.setattr(FlagNormalizer, "adjust_flags", adjust)

        report = adjust_flags_in_folder(tmp_path, "Persian", "English")

        a, b = report.outcomes
        assert (a.succeeded, a.message) == (False, "unexpected")
        assert b.succeeded is True

    def test_remove_language_in_folder(self, tmp_path, fake_mkv):
        fake_mkv.make_container(tmp_path / "A.mkv", [video(), subtitle("per"), subtitle("eng")])
        fake_mkv.make_container(tmp_path / "B.mkv", [video(), subtitle("eng")])
        (tmp_path / "C.mkv").write_text("garbage")

        report = remove_language_in_folder(tmp_path, "Persian")

        a, b, c = report.outcomes
        assert (a.succeeded, a.changed) == (True, True)
        assert (b.succeeded, b.changed) == (True, False)
        assert c.succeeded is False
        assert report.changed_count == 1
        assert [t["language"] for t in fake_mkv.tracks(tmp_path / "A.mkv")[1:]] == ["eng"]

    def test_remove_unknown_language_touches_nothing(self, tmp_path, fake_mkv):
        fake_mkv.make_container(tmp_path / "A.mkv", [video(), subtitle("per")])

        with pytest.raises(UnknownLanguageError):
            remove_language_in_folder(tmp_path, "Elvish")
        assert fake_mkv.calls == []
