"""
Library scanning and subtitle/video matching.

Pairs subtitle files with video files by what their names say:
`Show.Name.S01E02...` (title, season, episode) or `Movie.Name.2010...`
(title, year). Titles are compared lowercased with punctuation stripped, so
`The.Office.S02E03.srt` matches `the_office S02E03 1080p.mkv`.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from submux.logs_utils import safe_push_log
from submux.tmp_files import (
    CONTAINER_EXTENSIONS,
    SUBTITLE_EXTENSIONS,
    VIDEO_EXTENSIONS,
    is_hidden_or_resource_fork,
    is_temp_output,
)

SHOW_PATTERN = re.compile(
    r"^(?P<title>.*?)S(?P<season>\d{1,2})E(?P<episode>\d{2,3}|\d)", re.IGNORECASE
)
MOVIE_PATTERN = re.compile(
    r"^(?P<title>.+?)(?:\.|_)(?P<year>(?:19|20)\d{2})", re.IGNORECASE
)
_NON_WORD = re.compile(r"[\W_]+")


@dataclass(frozen=True)
class MediaMeta:
    kind: str  # "show" or "movie"
    title: str
    season: Optional[str] = None
    episode: Optional[str] = None
    year: Optional[str] = None

    def matches(self, other: "MediaMeta") -> bool:
        if self.kind != other.kind or self.title != other.title:
            return False
        if self.kind == "show":
            return self.season == other.season and self.episode == other.episode
        return self.year == other.year


@dataclass(frozen=True)
class MatchedPair:
    video_path: Path
    subtitle_path: Path


def _normalize_title(title: str) -> str:
    return _NON_WORD.sub("", title.lower())


def extract_meta(filename: str) -> Optional[MediaMeta]:
    """
    Read show or movie identity from a file name.

    Args:
        filename: Base name (e.g., "Dark.S01E02.720p.mkv")

    Returns:
        MediaMeta, or None when neither pattern matches
    """
    show = SHOW_PATTERN.match(filename)
    if show:
        return MediaMeta(
            kind="show",
            title=_normalize_title(show.group("title")),
            season=show.group("season"),
            episode=show.group("episode"),
        )

    movie = MOVIE_PATTERN.match(filename)
    if movie:
        return MediaMeta(
            kind="movie",
            title=_normalize_title(movie.group("title")),
            year=movie.group("year"),
        )
    return None


def _list_files(folder: Path, extensions: List[str]) -> List[Path]:
    if not folder.is_dir():
        return []
    return sorted(
        (
            p
            for p in folder.iterdir()
            if p.is_file()
            and p.suffix.lower() in extensions
            and not is_hidden_or_resource_fork(p)
            and not is_temp_output(p)
        ),
        key=lambda p: p.name,
    )


def list_subtitle_files(folder: Path) -> List[Path]:
    """Subtitle files of a folder, sorted by name, hidden files skipped"""
    return _list_files(folder, SUBTITLE_EXTENSIONS)


def list_video_files(folder: Path) -> List[Path]:
    """Video files of a folder, sorted by name, hidden files skipped"""
    return _list_files(folder, VIDEO_EXTENSIONS)


def list_container_files(folder: Path) -> List[Path]:
    """Matroska files only: the ones the flag and removal commands can edit"""
    return _list_files(folder, CONTAINER_EXTENSIONS)


def match_subtitles_to_videos(subtitle_dir: Path, video_dir: Path) -> List[MatchedPair]:
    """
    Pair every subtitle with the first video that has the same identity.

    Args:
        subtitle_dir: Folder holding the .srt files
        video_dir: Folder holding the videos

    Returns:
        List of MatchedPair, in subtitle name order
    """
    subtitles = list_subtitle_files(subtitle_dir)
    videos = list_video_files(video_dir)

    if not subtitles:
        safe_push_log("⚠️ No subtitles found in the specified directory.")
        return []
    if not videos:
        safe_push_log("⚠️ No video files found in the specified directory.")
        return []

    video_metas = [(video, extract_meta(video.name)) for video in videos]
    pairs = []
    for subtitle in subtitles:
        sub_meta = extract_meta(subtitle.name)
        if sub_meta is None:
            safe_push_log(f"⚠️ Skipping unmatched subtitle: {subtitle.name}")
            continue

        match = next(
            (video for video, meta in video_metas if meta and sub_meta.matches(meta)),
            None,
        )
        if match is None:
            safe_push_log(f"❌ No match found for subtitle: {subtitle.name}")
            continue
        pairs.append(MatchedPair(video_path=match, subtitle_path=subtitle))
    return pairs


def find_folders_with_subtitles(root: Path) -> Iterator[Path]:
    """
    Walk a library and yield every folder that directly holds a subtitle.

    Subfolders are visited before their parent, in name order.
    """
    if not root.is_dir():
        return
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except PermissionError:
        return

    for entry in entries:
        if entry.is_dir() and not entry.name.startswith("."):
            yield from find_folders_with_subtitles(entry)

    if list_subtitle_files(root):
        yield root
