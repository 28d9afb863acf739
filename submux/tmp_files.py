"""
Temporary file naming utilities for SubMux.

Every container mutation writes to a sibling temp file with a fixed,
predictable suffix per operation type, then swaps it into place:

    Movies/
    ├── Movie.2010.mkv                 # original, replaced only on success
    ├── Movie.2010_RemovingSub.mkv     # remove_tracks_by_language output
    └── Movie.2010_merged.mkv          # merge_subtitle_into_container output

A crashed run leaves its temp file behind; the next run of the same
operation simply overwrites it.
"""

from pathlib import Path
from typing import List, Union

# Shared constants for extensions used throughout the codebase
VIDEO_EXTENSIONS = [".mkv", ".mp4", ".avi"]
CONTAINER_EXTENSIONS = [".mkv"]
SUBTITLE_EXTENSIONS = [".srt"]

REMOVE_SUFFIX = "_RemovingSub"
MERGE_SUFFIX = "_merged"
CONVERT_SUFFIX = ".utf8tmp"

TEMP_SUFFIXES = [REMOVE_SUFFIX, MERGE_SUFFIX]


def _sibling(container_path: Union[str, Path], suffix: str) -> Path:
    path = Path(container_path)
    # mkvmerge always writes Matroska, whatever the source extension
    return path.parent / f"{path.stem}{suffix}.mkv"


def get_remove_temp_path(container_path: Union[str, Path]) -> Path:
    """
    Get temp output path for subtitle removal.

    Args:
        container_path: Original container (e.g., Movie.2010.mkv)

    Returns:
        Path to temp output (e.g., Movie.2010_RemovingSub.mkv)
    """
    return _sibling(container_path, REMOVE_SUFFIX)


def get_merge_temp_path(container_path: Union[str, Path]) -> Path:
    """
    Get temp output path for subtitle merge.

    Args:
        container_path: Original container (e.g., Movie.2010.mkv)

    Returns:
        Path to temp output (e.g., Movie.2010_merged.mkv)
    """
    return _sibling(container_path, MERGE_SUFFIX)


def get_convert_temp_path(subtitle_path: Union[str, Path]) -> Path:
    """Temp path for the UTF-8 rewrite of a subtitle file."""
    path = Path(subtitle_path)
    return path.with_name(path.name + CONVERT_SUFFIX)


def is_temp_output(path: Union[str, Path]) -> bool:
    """Check if a file name is one of our container temp outputs."""
    stem = Path(path).stem
    return any(stem.endswith(suffix) for suffix in TEMP_SUFFIXES)


def is_hidden_or_resource_fork(path: Union[str, Path]) -> bool:
    """Dot files and macOS AppleDouble ("._name") files are never media."""
    return Path(path).name.startswith(".")


def find_stale_temp_outputs(folder: Path) -> List[Path]:
    """
    Find temp outputs left by interrupted runs.

    Args:
        folder: Directory to scan (not recursive)

    Returns:
        Sorted list of leftover temp files
    """
    if not folder.exists():
        return []
    return sorted(p for p in folder.iterdir() if p.is_file() and is_temp_output(p))
