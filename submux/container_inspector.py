"""
Container track inspection.

Reads a Matroska container's track list through `mkvmerge -J` and exposes it
as typed Track records. Nothing is cached: every call re-runs the identify
command, because track ids are renumbered by any edit while uids survive.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from submux.config import get_settings
from submux.errors import ExternalToolError, InspectionError
from submux.process_utils import run_tool

# mkvmerge prints 64-bit uids as bare numbers
_UID_NUMBER_PATTERN = re.compile(r'"uid"\s*:\s*(\d+)')


class TrackType(Enum):
    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLES = "subtitles"


@dataclass(frozen=True)
class Track:
    """
    One stream of a container, as read from a single identify snapshot.

    `id` is the positional index for this snapshot only; `uid` is stable
    across edits and is what every later lookup must use. Non-Matroska
    inputs have no uid (None).
    """

    id: int
    uid: Optional[int]
    type: TrackType
    language_code: str
    is_default: bool
    is_forced: bool
    name: Optional[str] = None

    @property
    def is_commentary(self) -> bool:
        return "commentary" in (self.name or "").lower()

    @property
    def name_mentions_forced(self) -> bool:
        return "forced" in (self.name or "").lower()


def quote_uid_numbers(identify_output: str) -> str:
    """Rewrite every numeric "uid" value as a string literal before parsing."""
    return _UID_NUMBER_PATTERN.sub(r'"uid": "\1"', identify_output)


def _parse_track(raw: dict) -> Optional[Track]:
    if not isinstance(raw, dict):
        raise InspectionError(f"Track entry is not an object: {raw!r}")
    try:
        track_type = TrackType(raw.get("type"))
    except (TypeError, ValueError):
        # Buttons, attachments-like pseudo tracks: not ours to normalize
        return None

    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        raise InspectionError(f"Track properties are not an object: {raw!r}")
    try:
        track_id = int(raw["id"])
        # Only Matroska inputs report a uid
        uid = int(properties["uid"]) if properties.get("uid") is not None else None
    except (KeyError, TypeError, ValueError) as e:
        raise InspectionError(f"Track without usable id/uid: {raw!r}") from e

    return Track(
        id=track_id,
        uid=uid,
        type=track_type,
        language_code=str(properties.get("language") or "und").lower(),
        is_default=bool(properties.get("default_track", False)),
        is_forced=bool(properties.get("forced_track", False)),
        name=properties.get("track_name"),
    )


def parse_identify_output(identify_output: str) -> List[Track]:
    """
    Parse `mkvmerge -J` output into tracks.

    Raises:
        InspectionError: when the output is not JSON or has no tracks array
    """
    try:
        data = json.loads(quote_uid_numbers(identify_output))
    except json.JSONDecodeError as e:
        raise InspectionError(f"Unparseable identify output: {e}") from e

    raw_tracks = data.get("tracks") if isinstance(data, dict) else None
    if not isinstance(raw_tracks, list):
        raise InspectionError("Identify output has no 'tracks' array")

    tracks = []
    for raw in raw_tracks:
        track = _parse_track(raw)
        if track is not None:
            tracks.append(track)
    return tracks


def inspect(container_path: Union[str, Path]) -> List[Track]:
    """
    Read the current track list of a container.

    Args:
        container_path: Path to the container file

    Returns:
        List of Track records in container order

    Raises:
        InspectionError: identify call failed or its output is not parseable
    """
    path = Path(container_path)
    cmd = [get_settings().MKVMERGE_PATH, "-J", str(path)]
    try:
        result = run_tool(cmd, error_context=f"Identify {path.name}")
    except ExternalToolError as e:
        raise InspectionError(f"Could not inspect {path.name}: {e}") from e
    return parse_identify_output(result.stdout)


def get_tracks_by_type(
    container_path: Union[str, Path], track_type: TrackType
) -> List[Track]:
    """Tracks of one kind; an empty list when the container has none."""
    return [track for track in inspect(container_path) if track.type is track_type]


def find_track_by_uid(container_path: Union[str, Path], uid: int) -> Optional[Track]:
    """Fresh lookup of a track by its stable uid."""
    if uid is None:
        return None
    uid = int(uid)
    for track in inspect(container_path):
        if track.uid == uid:
            return track
    return None


def resolve_track_id_by_uid(container_path: Union[str, Path], uid: int) -> Optional[int]:
    """
    Map a stable uid to the track id of the current snapshot.

    Returns:
        The current id, or None when the uid no longer exists. Callers must
        treat None as fatal for the edit they were about to run.
    """
    track = find_track_by_uid(container_path, uid)
    return track.id if track else None
