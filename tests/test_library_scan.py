"""
Tests for subtitle/video matching and library walking.
"""

import pytest

from submux.library_scan import (
    MediaMeta,
    extract_meta,
    find_folders_with_subtitles,
    list_container_files,
    list_subtitle_files,
    match_subtitles_to_videos,
)


def _touch(folder, *names):
    folder.mkdir(parents=True, exist_ok=True)
    for name in names:
        (folder / name).write_text("x")


class TestExtractMeta:
    """Show and movie patterns"""

    def test_show(self):
        meta = extract_meta("The.Office.S02E03.720p.WEB.mkv")
        assert meta == MediaMeta(kind="show", title="theoffice", season="02", episode="03")

    def test_show_is_case_insensitive(self):
        assert extract_meta("dark.s01e10.srt") == MediaMeta(
            kind="show", title="dark", season="01", episode="10"
        )

    def test_movie(self):
        meta = extract_meta("Blade_Runner.1982.Final.Cut.mkv")
        assert meta == MediaMeta(kind="movie", title="bladerunner", year="1982")

    def test_unmatched_name(self):
        assert extract_meta("holiday video.mkv") is None

    @pytest.mark.parametrize(
        "left,right,expected",
        [
            ("The.Office.S02E03.srt", "the_office S02E03 1080p.mkv", True),
            ("The.Office.S02E03.srt", "The.Office.S02E04.mkv", False),
            ("Dune.2021.srt", "Dune.2021.2160p.mkv", True),
            ("Dune.1984.srt", "Dune.2021.mkv", False),
        ],
    )
    def test_matches(self, left, right, expected):
        assert extract_meta(left).matches(extract_meta(right)) is expected


class TestListing:
    """Folder listings skip hidden files and temp outputs"""

    def test_list_subtitle_files(self, tmp_path):
        _touch(tmp_path, "b.srt", "a.srt", "._a.srt", "notes.txt")
        assert [p.name for p in list_subtitle_files(tmp_path)] == ["a.srt", "b.srt"]

    def test_list_container_files(self, tmp_path):
        _touch(tmp_path, "A.mkv", "A_merged.mkv", "B.mp4", "._C.mkv")
        assert [p.name for p in list_container_files(tmp_path)] == ["A.mkv"]

    def test_missing_folder(self, tmp_path):
        assert list_subtitle_files(tmp_path / "nope") == []


class TestMatching:
    """Pairing subtitles with videos"""

    def test_pairs_by_identity(self, tmp_path):
        subs = tmp_path / "subs"
        videos = tmp_path / "videos"
        _touch(subs, "Dark.S01E01.fa.srt", "Dark.S01E02.fa.srt", "Random.srt")
        _touch(videos, "Dark.S01E02.1080p.mkv", "Dark.S01E01.1080p.mkv", "Dark.S01E03.mkv")

        pairs = match_subtitles_to_videos(subs, videos)

        assert [(p.subtitle_path.name, p.video_path.name) for p in pairs] == [
            ("Dark.S01E01.fa.srt", "Dark.S01E01.1080p.mkv"),
            ("Dark.S01E02.fa.srt", "Dark.S01E02.1080p.mkv"),
        ]

    def test_unmatched_subtitles_are_logged(self, tmp_path, logs):
        _touch(tmp_path, "Dune.2021.srt", "Random.srt", "Arrival.2016.mkv")

        assert match_subtitles_to_videos(tmp_path, tmp_path) == []
        assert any("No match found for subtitle: Dune.2021.srt" in line for line in logs)
        assert any("Skipping unmatched subtitle: Random.srt" in line for line in logs)

    def test_no_videos(self, tmp_path, logs):
        _touch(tmp_path, "Dune.2021.srt")
        assert match_subtitles_to_videos(tmp_path, tmp_path) == []
        assert any("No video files found" in line for line in logs)


class TestFindFoldersWithSubtitles:
    """Recursive library walk"""

    def test_children_before_parent(self, tmp_path):
        _touch(tmp_path, "Movie.2010.srt")
        _touch(tmp_path / "Show" / "Season 1", "Show.S01E01.srt")
        _touch(tmp_path / "Show" / "Season 2", "Show.S02E01.mkv")
        _touch(tmp_path / ".trash", "Old.2000.srt")

        found = list(find_folders_with_subtitles(tmp_path))

        assert found == [tmp_path / "Show" / "Season 1", tmp_path]

    def test_missing_root(self, tmp_path):
        assert list(find_folders_with_subtitles(tmp_path / "nope")) == []
