"""
File System Utilities for SubMux

Provides directory listing for the UI folder picker and the small file
operations the batch driver needs around a job: renaming a subtitle next to
its video and waiting for a file that is still being copied.
"""

import time
from pathlib import Path
from typing import List

from submux.errors import FileIntegrityError
from submux.logs_utils import safe_push_log

STABILIZE_INTERVAL_SECONDS = 0.2
STABLE_SAMPLES_REQUIRED = 2


# === DIRECTORY OPERATIONS ===


def list_subdirs_recursive(root: Path, max_depth: int = 2) -> List[str]:
    """
    List subdirectories recursively up to max_depth levels.
    Returns paths relative to root, formatted for display.
    """
    if not root.exists():
        return []

    subdirs = []

    def scan_directory(current_path: Path, current_depth: int, relative_path: str = ""):
        if current_depth > max_depth:
            return

        try:
            for item in sorted(current_path.iterdir()):
                if item.is_dir() and not item.name.startswith("."):
                    full_relative = f"{relative_path}/{item.name}" if relative_path else item.name
                    subdirs.append(full_relative)

                    if current_depth < max_depth:
                        scan_directory(item, current_depth + 1, full_relative)
        except PermissionError:
            # Skip directories we can't access
            pass

    scan_directory(root, 0)
    return subdirs


# === FILE OPERATIONS ===


def safe_rename(old_path: Path, new_path: Path) -> Path:
    """
    Move a file by copying its bytes, checking the copy, then deleting the source.

    Works across filesystems (exFAT external drives included). A source that
    cannot be deleted afterwards only produces a warning.

    Raises:
        FileIntegrityError: copy failed or the new file is missing afterwards
    """
    try:
        content = old_path.read_bytes()
        new_path.write_bytes(content)
    except OSError as e:
        raise FileIntegrityError(f"Safe rename failed: {e}") from e

    if not new_path.exists() or new_path.stat().st_size != len(content):
        raise FileIntegrityError(f"Failed to verify new file at {new_path}")

    try:
        old_path.unlink()
    except OSError:
        safe_push_log(
            f"⚠️ Could not delete original file {old_path}. "
            "You may want to delete it manually."
        )
    return new_path


def wait_for_file_to_stabilize(file_path: Path, timeout: float = 3.0) -> None:
    """
    Wait until a file's size and mtime stop changing.

    Two consecutive identical samples taken STABILIZE_INTERVAL_SECONDS apart
    count as stable.

    Raises:
        FileIntegrityError: file did not stabilize within timeout seconds
    """
    stable_count = 0
    last_sample = None
    max_checks = max(1, int(timeout / STABILIZE_INTERVAL_SECONDS))

    for _ in range(max_checks):
        try:
            stat = file_path.stat()
            sample = (stat.st_size, stat.st_mtime_ns)
        except FileNotFoundError:
            # File might not exist yet
            sample = None

        if sample is not None and sample == last_sample:
            stable_count += 1
            if stable_count >= STABLE_SAMPLES_REQUIRED:
                return
        else:
            stable_count = 0
        last_sample = sample
        time.sleep(STABILIZE_INTERVAL_SECONDS)

    raise FileIntegrityError(
        f"File {file_path} did not stabilize within {timeout}s"
    )
