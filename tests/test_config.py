"""
Tests for settings defaults and environment overrides.
"""

from pathlib import Path

from submux.config import get_default_job_options, get_settings
from submux.pipeline import JobOptions


def test_defaults():
    """Defaults when nothing is configured."""
    settings = get_settings()

    assert settings.SUBTITLE_LANGUAGE == "English"
    assert settings.AUDIO_LANGUAGE == "English"
    assert settings.SHOULD_CONVERT and settings.SHOULD_CLEAN and settings.SHOULD_SYNC
    assert settings.KEEP_SUBTITLE_FILE is False
    assert settings.MKVMERGE_PATH == "mkvmerge"
    assert settings.MKVPROPEDIT_PATH == "mkvpropedit"
    assert settings.TOOL_TIMEOUT_SECONDS == 3600
    assert settings.MAX_PARALLEL_JOBS == 1
    assert settings.WAIT_FOR_STABLE_FILES is False
    assert settings.JELLYFIN_BASE_URL == ""


def test_subtitles_folder_falls_back_to_videos(monkeypatch, tmp_path):
    """An empty SUBTITLES_FOLDER means subtitles live next to the videos."""
    monkeypatch.setenv("VIDEOS_FOLDER", str(tmp_path))
    monkeypatch.setenv("SUBTITLES_FOLDER", "")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.VIDEOS_FOLDER == tmp_path
    assert settings.SUBTITLES_FOLDER == tmp_path


def test_relative_folders_resolve_against_project_root(monkeypatch):
    monkeypatch.setenv("VIDEOS_FOLDER", "media/videos")
    get_settings.cache_clear()

    settings = get_settings()

    project_root = Path(__file__).resolve().parent.parent
    assert settings.VIDEOS_FOLDER == project_root / "media" / "videos"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SUBTITLE_LANGUAGE", " Persian ")
    monkeypatch.setenv("SHOULD_SYNC", "no")
    monkeypatch.setenv("KEEP_SUBTITLE_FILE", "yes")
    monkeypatch.setenv("MAX_PARALLEL_JOBS", "4")
    monkeypatch.setenv("MKVMERGE_PATH", "/opt/mkvtoolnix/mkvmerge")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.SUBTITLE_LANGUAGE == "Persian"
    assert settings.SHOULD_SYNC is False
    assert settings.KEEP_SUBTITLE_FILE is True
    assert settings.MAX_PARALLEL_JOBS == 4
    assert settings.MKVMERGE_PATH == "/opt/mkvtoolnix/mkvmerge"


def test_invalid_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("MAX_PARALLEL_JOBS", "lots")
    monkeypatch.setenv("TOOL_TIMEOUT_SECONDS", "-5")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.MAX_PARALLEL_JOBS == 1
    assert settings.TOOL_TIMEOUT_SECONDS == 1


def test_jellyfin_settings_env_overrides(monkeypatch):
    """Jellyfin settings respect environment overrides and strip whitespace."""
    monkeypatch.setenv("JELLYFIN_BASE_URL", " https://jellyfin.example:8096/ ")
    monkeypatch.setenv("JELLYFIN_API_KEY", " super-secret ")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.JELLYFIN_BASE_URL == "https://jellyfin.example:8096/"
    assert settings.JELLYFIN_API_KEY == "super-secret"


def test_default_job_options(monkeypatch):
    monkeypatch.setenv("SHOULD_CLEAN", "false")
    get_settings.cache_clear()

    assert get_default_job_options() == JobOptions(
        should_convert=True,
        should_clean=False,
        should_sync=True,
        keep_subtitle_file=False,
    )
