"""
Process and Subprocess Utilities for SubMux

Provides centralized subprocess execution with standardized error handling,
timeout management, and logging integration. Every external tool call in the
project (mkvmerge, mkvpropedit, subcleaner, ffsubsync) goes through run_tool.
"""

import shutil
import subprocess
from typing import List, Optional

from submux.config import get_settings
from submux.errors import ExternalToolError
from submux.logs_utils import safe_push_log, summarize_tool_output


def run_tool(
    cmd: List[str], timeout: Optional[int] = None, error_context: str = ""
) -> subprocess.CompletedProcess:
    """
    Run an external tool and require a zero exit code.

    Args:
        cmd: Command to execute as list of strings
        timeout: Timeout in seconds (default: TOOL_TIMEOUT_SECONDS)
        error_context: Context string for error messages

    Returns:
        CompletedProcess with captured text stdout/stderr

    Raises:
        ExternalToolError: non-zero exit (mkvmerge warnings exit 1 and count
            as failures too), spawn failure, or timeout

    Example:
        result = run_tool(
            ["mkvmerge", "-J", "video.mkv"],
            error_context="Container identify"
        )
        tracks = json.loads(result.stdout)["tracks"]
    """
    if timeout is None:
        timeout = get_settings().TOOL_TIMEOUT_SECONDS
    prefix = f"{error_context}: " if error_context else ""
    tool = cmd[0] if cmd else "?"

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, errors="replace", timeout=timeout
        )
    except subprocess.TimeoutExpired:
        error_msg = f"{prefix}{tool} timed out after {timeout} seconds"
        safe_push_log(f"⚠️ {error_msg}")
        raise ExternalToolError(error_msg, cmd=cmd, timed_out=True)
    except UnicodeDecodeError as e:
        error_msg = f"{prefix}{tool} printed undecodable output: {e}"
        safe_push_log(f"❌ {error_msg}")
        raise ExternalToolError(error_msg, cmd=cmd) from e
    except OSError as e:
        error_msg = f"{prefix}could not start {tool}: {e}"
        safe_push_log(f"❌ {error_msg}")
        raise ExternalToolError(error_msg, cmd=cmd) from e

    if result.returncode != 0:
        detail = summarize_tool_output(result.stderr) or summarize_tool_output(
            result.stdout
        )
        error_msg = f"{prefix}{tool} exited with code {result.returncode}"
        safe_push_log(f"❌ {error_msg}" + (f" ({detail})" if detail else ""))
        raise ExternalToolError(
            error_msg,
            cmd=cmd,
            returncode=result.returncode,
            stderr=result.stderr or result.stdout or "",
        )
    return result


def check_command_available(command: str) -> bool:
    """
    Check if a command is available in the system PATH.

    Args:
        command: Command name to check (e.g., 'mkvmerge', 'ffsubsync')

    Returns:
        True if command is available, False otherwise
    """
    return shutil.which(command) is not None


def get_command_version(command: str, version_arg: str = "--version") -> str:
    """
    Get version information for a command.

    Args:
        command: Command name (e.g., 'mkvmerge')
        version_arg: Argument to get version (default: '--version')

    Returns:
        Version string or empty string if failed
    """
    try:
        result = run_tool(
            [command, version_arg],
            timeout=10,
            error_context=f"Getting {command} version",
        )
    except ExternalToolError:
        return ""
    # Return first line of output (usually contains version)
    return result.stdout.split("\n")[0] if result.stdout else ""


def check_required_tools() -> List[str]:
    """
    List the configured tools that cannot be found.

    Returns:
        List of missing executables (empty when everything is installed)
    """
    settings = get_settings()
    tools = [
        settings.MKVMERGE_PATH,
        settings.MKVPROPEDIT_PATH,
        settings.SUBCLEANER_PATH,
        settings.FFSUBSYNC_PATH,
    ]
    return [tool for tool in tools if not check_command_available(tool)]
