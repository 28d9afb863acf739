"""
Safe container mutation.

Every remux goes through the same sequence: write a sibling temp file with
mkvmerge, verify it, then swap it over the original with a single atomic
rename. The original is never deleted or truncated before the tool exited
zero and the temp output checked out, so a failure at any step leaves the
original byte-identical. Flag edits use mkvpropedit in place: it only
rewrites header elements.

All operations on one container path are serialized by container_lock().
"""

from __future__ import annotations

import os
import shutil
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Union

from submux.config import get_settings
from submux.container_inspector import TrackType, inspect, resolve_track_id_by_uid
from submux.errors import (
    FileIntegrityError,
    InspectionError,
    TrackNotFoundError,
    UnknownLanguageError,
    VerificationError,
)
from submux.languages import get_language_codes, get_language_name_by_code
from submux.logs_utils import safe_push_log
from submux.process_utils import run_tool
from submux.tmp_files import (
    get_merge_temp_path,
    get_remove_temp_path,
    is_hidden_or_resource_fork,
)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a successful mutation. The temp path is never exposed."""

    container_path: Path
    changed: bool
    message: str
    removed_track_ids: Tuple[int, ...] = ()


# === LOCKING ===


class _ContainerLock:
    """Re-entrant lock of one path. Dropped from _LOCKS once nobody holds it."""

    def __init__(self):
        self._lock = threading.RLock()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info):
        self._lock.release()


_LOCKS: weakref.WeakValueDictionary[str, _ContainerLock] = weakref.WeakValueDictionary()
_LOCKS_GUARD = threading.Lock()


def _lock_for(container_path: PathLike) -> _ContainerLock:
    key = os.path.realpath(os.fspath(container_path))
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _ContainerLock()
            _LOCKS[key] = lock
        return lock


@contextmanager
def container_lock(container_path: PathLike) -> Iterator[None]:
    """
    Hold the per-path lock of a container.

    Re-entrant, so a job holding its video's lock can call the mutator
    functions, which take the same lock again.
    """
    lock = _lock_for(container_path)
    with lock:
        yield


# === FILE HELPERS ===


def _require_file(path: Path, what: str) -> None:
    if not path.is_file():
        raise FileIntegrityError(f"{what} not found: {path}")
    if is_hidden_or_resource_fork(path):
        raise FileIntegrityError(f"Skipping Apple resource fork file: {path.name}")


def _check_temp_output(temp_path: Path) -> None:
    try:
        size = temp_path.stat().st_size
    except OSError as e:
        raise FileIntegrityError(f"Temp output missing: {temp_path.name}") from e
    if size == 0:
        raise FileIntegrityError(f"Temp output is empty: {temp_path.name}")


def _swap_into_place(temp_path: Path, original_path: Path) -> None:
    """Replace original with temp in one rename; the original is never missing."""
    _check_temp_output(temp_path)
    try:
        os.replace(temp_path, original_path)
    except OSError as e:
        raise FileIntegrityError(
            f"Could not replace {original_path.name} with {temp_path.name}: {e}"
        ) from e


def _subtitle_ids_in_languages(container_path: Path, codes: Iterable[str]) -> list:
    codes = set(codes)
    return [
        track.id
        for track in inspect(container_path)
        if track.type is TrackType.SUBTITLES and track.language_code in codes
    ]


# === OPERATIONS ===


def remove_tracks_by_language(
    container_path: PathLike, language_name: str
) -> MutationResult:
    """
    Drop every subtitle track of a language from a container.

    Args:
        container_path: Container to rewrite
        language_name: Table name, case-sensitive (e.g. "Persian")

    Returns:
        MutationResult; changed=False and the file untouched when the
        container has no subtitle in that language

    Raises:
        UnknownLanguageError: name not in the language table
        InspectionError: identify failed on the original or the temp output
        ExternalToolError: mkvmerge failed (original untouched)
        FileIntegrityError: temp output missing/empty or the swap failed
        VerificationError: temp output still has subtitles in that language
    """
    path = Path(container_path)
    codes = get_language_codes(language_name)
    if not codes:
        raise UnknownLanguageError(language_name)

    with container_lock(path):
        _require_file(path, "Video file")
        ids_to_remove = _subtitle_ids_in_languages(path, codes)
        if not ids_to_remove:
            safe_push_log(
                f"⚠️ File {path.name} has no subtitles with language {language_name}"
            )
            return MutationResult(
                container_path=path,
                changed=False,
                message=f"No {language_name} subtitles to remove",
            )

        temp_path = get_remove_temp_path(path)
        selection = "!" + ",".join(str(track_id) for track_id in ids_to_remove)
        run_tool(
            [get_settings().MKVMERGE_PATH, "-o", str(temp_path), "-s", selection, str(path)],
            error_context=f"Removing {language_name} subtitles from {path.name}",
        )

        _check_temp_output(temp_path)
        if _subtitle_ids_in_languages(temp_path, codes):
            raise VerificationError(
                f"Failed to remove subtitles with language '{language_name}' "
                f"from {path.name}"
            )

        _swap_into_place(temp_path, path)
        safe_push_log(
            f"✅ Subtitles with language {language_name} removed to avoid duplicates "
            f"({len(ids_to_remove)} track(s))"
        )
        return MutationResult(
            container_path=path,
            changed=True,
            message=f"Removed {len(ids_to_remove)} {language_name} subtitle track(s)",
            removed_track_ids=tuple(ids_to_remove),
        )


def merge_subtitle_into_container(
    container_path: PathLike,
    subtitle_path: PathLike,
    language_code: str,
    track_title: str,
    keep_subtitle_file: bool = False,
) -> MutationResult:
    """
    Add a subtitle file to a container as a default+forced track.

    Existing subtitles of the same language are removed first, so running
    the merge twice never stacks two tracks of one language.

    Args:
        container_path: Container to rewrite
        subtitle_path: External subtitle file (.srt)
        language_code: Code written on the new track (e.g. "per")
        track_title: Track name shown by players
        keep_subtitle_file: When False, the subtitle file is deleted after a
            successful swap

    Raises:
        FileIntegrityError: inputs missing, copy failed, bad temp output or swap
        ExternalToolError: mkvmerge failed (original untouched)
        InspectionError / VerificationError: from the de-duplication step
    """
    path = Path(container_path)
    subtitle = Path(subtitle_path)
    title = track_title or language_code.upper()

    with container_lock(path):
        _require_file(path, "Video file")
        _require_file(subtitle, "Subtitle file")
        safe_push_log(f"📂 Video File: {path.name}")
        safe_push_log(f"📂 Sub File:   {subtitle.name}")

        language_name = get_language_name_by_code(language_code)
        if language_name:
            remove_tracks_by_language(path, language_name)
        else:
            safe_push_log(
                f"⚠️ Unknown language code '{language_code}', skipping duplicate removal"
            )

        temp_path = get_merge_temp_path(path)
        try:
            shutil.copy2(path, temp_path)
        except OSError as e:
            raise FileIntegrityError(f"Copying video file failed: {e}") from e

        run_tool(
            [
                get_settings().MKVMERGE_PATH,
                "-o",
                str(temp_path),
                str(path),
                "--language",
                f"0:{language_code}",
                "--track-name",
                f"0:{title}",
                "--default-track",
                "0:yes",
                "--forced-track",
                "0:yes",
                str(subtitle),
            ],
            error_context=f"Merging {subtitle.name} into {path.name}",
        )

        _swap_into_place(temp_path, path)

        if not keep_subtitle_file:
            try:
                subtitle.unlink()
            except OSError as e:
                safe_push_log(f"⚠️ Could not delete subtitle {subtitle.name}: {e}")

        safe_push_log(f"✅ Successfully merged: {path.name}")
        return MutationResult(
            container_path=path,
            changed=True,
            message=f"Merged {subtitle.name} as {language_code} ({title})",
        )


def edit_track_flags(
    container_path: PathLike,
    uid: Optional[int],
    is_default: bool,
    is_forced: bool,
    name: str,
) -> int:
    """
    Set default/forced flags and the name of one track.

    The track id is resolved from the uid right before the edit, on a fresh
    snapshot; a previously resolved id is never reused.

    Returns:
        int: the id the track had when the edit ran

    Raises:
        TrackNotFoundError: uid no longer in the container
        InspectionError: identify failed, or the track has no uid
            (non-Matroska container)
        ExternalToolError: mkvpropedit failed
    """
    path = Path(container_path)
    if uid is None:
        raise InspectionError(
            f"{path.name} has no track uids, flags can only be edited in Matroska files"
        )
    with container_lock(path):
        track_id = resolve_track_id_by_uid(path, uid)
        if track_id is None:
            raise TrackNotFoundError(uid, path)

        run_tool(
            [
                get_settings().MKVPROPEDIT_PATH,
                str(path),
                "--edit",
                f"track:={uid}",
                "--set",
                f"flag-default={1 if is_default else 0}",
                "--set",
                f"flag-forced={1 if is_forced else 0}",
                "--set",
                f"name={name}",
            ],
            error_context=f"Editing flags of track {track_id} in {path.name}",
        )
        return track_id
