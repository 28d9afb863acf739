"""
Logging and Error Message Utilities for SubMux

Provides centralized logging functionality and error message trimming
so the batch driver, the CLI and the Streamlit UI all show the same lines.
"""

import threading
from typing import Callable, Optional

from submux.languages import get_language_name_by_code


# Sink registered by the UI (or the CLI); None means print to console
_MAIN_PUSH_LOG: Optional[Callable[[str], None]] = None
_LOG_LOCK = threading.RLock()

# Lines from mkvmerge/mkvpropedit stderr that carry no useful information
NOISE_PATTERNS = [
    "progress:",
    "mkvmerge v",
    "mkvpropedit v",
    "the file is being analyzed",
    "the changes are written to the file",
    "done.",
]

MAX_ERROR_LINES = 6


# === LOGGING FUNCTIONS ===


def register_main_push_log(push_log: Optional[Callable[[str], None]]) -> None:
    """Register (or clear with None) the function that receives every log line"""
    global _MAIN_PUSH_LOG
    _MAIN_PUSH_LOG = push_log


def safe_push_log(message: str):
    """Safe logging function that works even if no sink is registered yet"""
    with _LOG_LOCK:
        sink = _MAIN_PUSH_LOG
        if sink is None:
            print(f"[LOG] {message}")
            return
        try:
            sink(message)
        except Exception as e:
            print(f"[LOG] {message} (Error: {e})")


def log_title(title: str, underline_char: str = "─"):
    """
    Log a title with automatic underline matching the exact title length

    Args:
        title: The title text to display
        underline_char: Character to use for underline (default: ─)
    """
    safe_push_log(title)
    safe_push_log(underline_char * len(title))


def log_separator(width: int = 100):
    """Separator printed between two jobs"""
    safe_push_log("-" * width)


# === MESSAGE HELPERS ===


def describe_track(track) -> str:
    """
    One-line human description of a container track.

    Args:
        track: container_inspector.Track

    Returns:
        str: e.g. "audio #1 English (eng) [default, forced] 'Commentary'"
    """
    language = get_language_name_by_code(track.language_code) or "Unknown"
    flags = []
    if track.is_default:
        flags.append("default")
    if track.is_forced:
        flags.append("forced")
    flag_str = f" [{', '.join(flags)}]" if flags else ""
    name_str = f" '{track.name}'" if track.name else ""
    return (
        f"{track.type.value} #{track.id} {language} ({track.language_code})"
        f"{flag_str}{name_str}"
    )


def is_tool_noise(line: str) -> bool:
    """Check if a tool output line should be suppressed from user logs"""
    line_lower = line.strip().lower()
    if not line_lower:
        return True
    return any(line_lower.startswith(pattern) for pattern in NOISE_PATTERNS)


def summarize_tool_output(output: str, max_lines: int = MAX_ERROR_LINES) -> str:
    """
    Keep only the meaningful tail of a tool's stdout/stderr.

    mkvmerge reports errors on stdout ("Error: ...") as often as on stderr,
    so callers pass whichever stream is non-empty.
    """
    if not output:
        return ""
    lines = [line.strip() for line in output.splitlines() if not is_tool_noise(line)]
    return " | ".join(lines[-max_lines:])


def summarize_tool_error(error: Exception) -> str:
    """Short message for an exception raised around an external tool"""
    stderr = getattr(error, "stderr", "") or ""
    detail = summarize_tool_output(stderr)
    if detail and detail not in str(error):
        return f"{error} ({detail})"
    return str(error)
