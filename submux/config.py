"""
SubMux Configuration Management

Centralized configuration handling for all environment variables.
Provides type-safe access to settings with proper defaults and validation.
"""

from __future__ import annotations

import os
from pathlib import Path
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from dotenv import load_dotenv

if TYPE_CHECKING:
    from submux.pipeline import JobOptions


# === Container Detection ===
def in_container() -> bool:
    """Detect if we are running inside a container (Docker/Podman)"""
    return Path("/.dockerenv").exists() or Path("/run/.containerenv").exists()


IN_CONTAINER = in_container()


# === Early .env Loading (only if not in container) ===
if not IN_CONTAINER:
    env_file = Path(__file__).resolve().parent.parent / ".env"
    if env_file.exists():
        try:
            load_dotenv(env_file, override=False)
            print(f"✅ Loaded environment variables from {env_file}")
        except Exception as e:
            print(f"⚠️ Failed to load .env file: {e}")


# === Default Configuration ===
_DEFAULTS = {
    # === Core Paths ===
    "VIDEOS_FOLDER": "/data/videos" if IN_CONTAINER else "./videos",
    "SUBTITLES_FOLDER": "",  # Empty = same folder as videos
    # === Target Languages (names from the language table, capitalized) ===
    "SUBTITLE_LANGUAGE": "English",
    "AUDIO_LANGUAGE": "English",
    # === Pipeline Stages ===
    "SHOULD_CONVERT": "true",  # Convert subtitle to UTF-8 before muxing
    "SHOULD_CLEAN": "true",  # Remove advertising lines with subcleaner
    "SHOULD_SYNC": "true",  # Re-time subtitle against the audio with ffsubsync
    "KEEP_SUBTITLE_FILE": "false",  # Keep the .srt next to the video after merge
    # === External Tools ===
    "MKVMERGE_PATH": "mkvmerge",
    "MKVPROPEDIT_PATH": "mkvpropedit",
    "SUBCLEANER_PATH": "subcleaner",
    "FFSUBSYNC_PATH": "ffsubsync",
    "TOOL_TIMEOUT_SECONDS": "3600",  # Per subprocess call; a timeout fails the stage
    # === Batch Options ===
    "MAX_PARALLEL_JOBS": "1",  # Distinct videos only, same path is always serialized
    "WAIT_FOR_STABLE_FILES": "false",  # Wait for size/mtime to settle before a job
    # === System ===
    "DEBUG": "false",
    # === Jellyfin Integration ===
    "JELLYFIN_BASE_URL": "",
    "JELLYFIN_API_KEY": "",
}


# === Helper Functions ===
def _to_bool(v: str | None, default: bool = False) -> bool:
    """Convert string to boolean"""
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on"}


def _to_int(v: str | None, default: int, minimum: int = 1) -> int:
    """Convert string to int, falling back to default on garbage"""
    try:
        value = int(str(v).strip())
    except (TypeError, ValueError):
        return default
    return max(minimum, value)


def _resolve_folder(raw: str, project_root: Path) -> Path:
    folder = Path(raw)
    if not folder.is_absolute():
        folder = (project_root / folder).resolve()
    return folder


# === Settings Dataclass ===
@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration settings for SubMux.

    All settings are loaded once and cached for the lifetime of the application.
    Use get_settings() to access the singleton instance.
    """

    # Paths
    VIDEOS_FOLDER: Path
    SUBTITLES_FOLDER: Path

    # Target languages
    SUBTITLE_LANGUAGE: str
    AUDIO_LANGUAGE: str

    # Pipeline stages
    SHOULD_CONVERT: bool
    SHOULD_CLEAN: bool
    SHOULD_SYNC: bool
    KEEP_SUBTITLE_FILE: bool

    # External tools
    MKVMERGE_PATH: str
    MKVPROPEDIT_PATH: str
    SUBCLEANER_PATH: str
    FFSUBSYNC_PATH: str
    TOOL_TIMEOUT_SECONDS: int

    # Batch
    MAX_PARALLEL_JOBS: int
    WAIT_FOR_STABLE_FILES: bool
    DEBUG: bool

    # Integrations
    JELLYFIN_BASE_URL: str
    JELLYFIN_API_KEY: str

    # System info
    IN_CONTAINER: bool = IN_CONTAINER


# === Configuration Loader ===
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Read configuration once, merging defaults and environment variables.

    This function is cached and will only run once per application lifetime.

    Returns:
        Settings: Immutable settings object with all configuration values
    """
    project_root = Path(__file__).resolve().parent.parent
    config = _DEFAULTS.copy()

    # 1️⃣ Override defaults with environment variables
    for key in config:
        env_value = os.getenv(key)
        if env_value is not None:
            config[key] = env_value

    # 2️⃣ Normalize paths
    videos_folder = _resolve_folder(config["VIDEOS_FOLDER"], project_root)
    subtitles_raw = config["SUBTITLES_FOLDER"].strip()
    subtitles_folder = (
        _resolve_folder(subtitles_raw, project_root) if subtitles_raw else videos_folder
    )

    # 3️⃣ Parse numbers and booleans
    return Settings(
        VIDEOS_FOLDER=videos_folder,
        SUBTITLES_FOLDER=subtitles_folder,
        SUBTITLE_LANGUAGE=config["SUBTITLE_LANGUAGE"].strip() or "English",
        AUDIO_LANGUAGE=config["AUDIO_LANGUAGE"].strip() or "English",
        SHOULD_CONVERT=_to_bool(config["SHOULD_CONVERT"], True),
        SHOULD_CLEAN=_to_bool(config["SHOULD_CLEAN"], True),
        SHOULD_SYNC=_to_bool(config["SHOULD_SYNC"], True),
        KEEP_SUBTITLE_FILE=_to_bool(config["KEEP_SUBTITLE_FILE"], False),
        MKVMERGE_PATH=config["MKVMERGE_PATH"].strip() or "mkvmerge",
        MKVPROPEDIT_PATH=config["MKVPROPEDIT_PATH"].strip() or "mkvpropedit",
        SUBCLEANER_PATH=config["SUBCLEANER_PATH"].strip() or "subcleaner",
        FFSUBSYNC_PATH=config["FFSUBSYNC_PATH"].strip() or "ffsubsync",
        TOOL_TIMEOUT_SECONDS=_to_int(config["TOOL_TIMEOUT_SECONDS"], 3600),
        MAX_PARALLEL_JOBS=_to_int(config["MAX_PARALLEL_JOBS"], 1),
        WAIT_FOR_STABLE_FILES=_to_bool(config["WAIT_FOR_STABLE_FILES"], False),
        DEBUG=_to_bool(config["DEBUG"], False),
        JELLYFIN_BASE_URL=config["JELLYFIN_BASE_URL"].strip(),
        JELLYFIN_API_KEY=config["JELLYFIN_API_KEY"].strip(),
    )


# === Helper Functions ===
def get_default_job_options() -> JobOptions:
    """
    Build pipeline stage toggles from the configured defaults.

    Returns:
        JobOptions: convert/clean/sync toggles and the keep-subtitle flag
    """
    from submux.pipeline import JobOptions

    settings = get_settings()
    return JobOptions(
        should_convert=settings.SHOULD_CONVERT,
        should_clean=settings.SHOULD_CLEAN,
        should_sync=settings.SHOULD_SYNC,
        keep_subtitle_file=settings.KEEP_SUBTITLE_FILE,
    )


def print_config_summary() -> None:
    """Print a summary of the current configuration for debugging"""
    s = get_settings()

    print("\n" + "=" * 80)
    print("🔧 SubMux Configuration Summary")
    print("=" * 80)

    # System
    print(f"🏃 Running mode: {'Container 📦' if s.IN_CONTAINER else 'Local 💻'}")
    print(f"🐞 Debug mode: {'ON' if s.DEBUG else 'OFF'}")

    # Paths
    print("\n📁 Paths:")
    print(f"   Videos: {s.VIDEOS_FOLDER}")
    if s.VIDEOS_FOLDER.exists():
        if os.access(s.VIDEOS_FOLDER, os.W_OK):
            print("   ✅ Videos folder is ready and writable")
        else:
            print("   ⚠️ Videos folder exists but is not writable!")
    else:
        print("   ⚠️ Videos folder does not exist")
    print(f"   Subtitles: {s.SUBTITLES_FOLDER}")

    # Languages
    print("\n🌐 Target Languages:")
    print(f"   Subtitle: {s.SUBTITLE_LANGUAGE}")
    print(f"   Audio: {s.AUDIO_LANGUAGE}")

    # Stages
    print("\n🎬 Pipeline Stages:")
    print(f"   Convert to UTF-8: {s.SHOULD_CONVERT}")
    print(f"   Clean ads: {s.SHOULD_CLEAN}")
    print(f"   Sync with audio: {s.SHOULD_SYNC}")
    print(f"   Keep subtitle file: {s.KEEP_SUBTITLE_FILE}")

    # Tools
    print("\n⚙️ External Tools:")
    print(f"   mkvmerge: {s.MKVMERGE_PATH}")
    print(f"   mkvpropedit: {s.MKVPROPEDIT_PATH}")
    print(f"   subcleaner: {s.SUBCLEANER_PATH}")
    print(f"   ffsubsync: {s.FFSUBSYNC_PATH}")
    print(f"   Timeout per call: {s.TOOL_TIMEOUT_SECONDS}s")

    # Batch
    print("\n📦 Batch:")
    print(f"   Parallel jobs: {s.MAX_PARALLEL_JOBS}")
    print(f"   Wait for stable files: {s.WAIT_FOR_STABLE_FILES}")

    # Integrations
    if s.JELLYFIN_BASE_URL:
        print("\n📡 Jellyfin:")
        print(f"   Server: {s.JELLYFIN_BASE_URL}")
        print(f"   API key: {'set ✅' if s.JELLYFIN_API_KEY else 'missing ⚠️'}")

    # Environment file (only in local mode)
    if not s.IN_CONTAINER:
        print("\n📄 Configuration file:")
        env_file = Path(__file__).parent.parent / ".env"
        if env_file.exists():
            print(f"   ✅ Configuration file found: {env_file}")
        else:
            print("   ⚠️ No .env file found - using defaults and environment variables")

    print("=" * 80 + "\n")


# === Auto-print on direct execution ===
if __name__ == "__main__":
    print_config_summary()
