"""
Subtitle file utilities.

The pipeline collaborators that work on the external subtitle file before it
is muxed: UTF-8 conversion, ad removal (subcleaner), timing sync against the
video audio (ffsubsync), and the sanity check run after each of them. Each
one edits the subtitle in place and leaves a valid, non-empty file on
success.
"""

import os
import re
from pathlib import Path
from typing import Union

import chardet

from submux.config import get_settings
from submux.errors import ExternalToolError
from submux.logs_utils import safe_push_log
from submux.process_utils import run_tool
from submux.tmp_files import get_convert_temp_path

SUPPORTED_SUBTITLE_EXTENSIONS = [".srt", ".ass", ".ssa", ".sub"]
UTF8_ENCODINGS = {"utf-8", "ascii"}
MIN_TIMECODES = 3

SRT_TIMECODE_PATTERN = re.compile(
    r"\d{2}:\d{2}:\d{2},\d{3}\s*-->\s*\d{2}:\d{2}:\d{2},\d{3}"
)


def validate_subtitle_file(
    subtitle_path: Union[str, Path], min_timecodes: int = MIN_TIMECODES
) -> bool:
    """
    Validate that a subtitle file is readable and has content.

    Args:
        subtitle_path: Path to subtitle file
        min_timecodes: Minimum number of SRT cues expected

    Returns:
        bool: True if file is valid, False otherwise
    """
    path = Path(subtitle_path)
    if not path.is_file():
        safe_push_log(f"❌ File not found: {path}")
        return False

    if path.stat().st_size == 0:
        safe_push_log(f"❌ File is empty: {path}")
        return False

    try:
        content = path.read_text(encoding="utf-8", errors="ignore")
    except OSError as e:
        safe_push_log(f"⚠️ Error reading subtitle file {path.name}: {e}")
        return False

    if path.suffix.lower() != ".srt":
        return bool(content.strip())

    matches = SRT_TIMECODE_PATTERN.findall(content)
    if len(matches) < min_timecodes:
        safe_push_log(
            f"⚠️ Subtitle may be invalid or corrupted: found {len(matches)} "
            f"timecodes in {path.name}"
        )
        return False
    return True


def detect_encoding(raw: bytes) -> str:
    """Best guess of a byte string's encoding, defaulting to utf-8."""
    detected = chardet.detect(raw).get("encoding")
    return (detected or "utf-8").lower()


def convert_to_utf8(subtitle_path: Union[str, Path]) -> bool:
    """
    Rewrite a subtitle file as UTF-8 (without BOM) in place.

    Args:
        subtitle_path: Path to the subtitle file

    Returns:
        bool: True when the file is (now) UTF-8, False on read/decode/write
        failure or an empty file

    Raises:
        ValueError: unsupported subtitle extension
    """
    path = Path(subtitle_path).resolve()
    if path.suffix.lower() not in SUPPORTED_SUBTITLE_EXTENSIONS:
        raise ValueError(f"Unsupported subtitle extension: {path.suffix}")

    try:
        raw = path.read_bytes()
    except OSError as e:
        safe_push_log(f"❌ Failed to read file: {e}")
        return False

    if not raw:
        safe_push_log(f"❌ File is empty: {path}")
        return False

    encoding = detect_encoding(raw)
    if encoding in UTF8_ENCODINGS:
        safe_push_log(f"✅ {path.name} is already UTF-8")
        return True

    safe_push_log(f"🔄 Converting {path.name} from {encoding} to UTF-8...")
    try:
        decoded = raw.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        safe_push_log(f"❌ Could not decode {path.name} as {encoding}: {e}")
        return False

    temp_path = get_convert_temp_path(path)
    try:
        temp_path.write_text(decoded.lstrip("\ufeff"), encoding="utf-8")
        if temp_path.stat().st_size == 0:
            safe_push_log("❌ Conversion resulted in empty file")
            temp_path.unlink()
            return False
        os.replace(temp_path, path)
    except OSError as e:
        safe_push_log(f"❌ Failed to write converted file: {e}")
        return False

    safe_push_log(f"✅ Successfully converted {path.name} to UTF-8")
    return True


def clean_ads(subtitle_path: Union[str, Path]) -> int:
    """
    Remove advertising lines with subcleaner.

    Returns:
        int: exit code, 0 on success (non-zero also when the cleaned file no
        longer validates)
    """
    path = Path(subtitle_path)
    try:
        run_tool(
            [get_settings().SUBCLEANER_PATH, str(path)],
            error_context=f"Cleaning ads from {path.name}",
        )
    except ExternalToolError as e:
        return e.returncode if e.returncode else 1

    if not validate_subtitle_file(path):
        return 1
    safe_push_log("✅ Ads cleaned.")
    return 0


def sync_with_video(video_path: Union[str, Path], subtitle_path: Union[str, Path]) -> int:
    """
    Re-time a subtitle against the video's audio with ffsubsync.

    Returns:
        int: exit code, 0 on success
    """
    video = Path(video_path)
    subtitle = Path(subtitle_path)
    safe_push_log(f"🔄 Syncing {subtitle.name} with {video.name}...")
    try:
        run_tool(
            [
                get_settings().FFSUBSYNC_PATH,
                str(video),
                "-i",
                str(subtitle),
                "-o",
                str(subtitle),
            ],
            error_context=f"Syncing {subtitle.name}",
        )
    except ExternalToolError as e:
        return e.returncode if e.returncode else 1

    if not validate_subtitle_file(subtitle):
        return 1
    safe_push_log(f"✅ Synced {subtitle.name} with video.")
    return 0
