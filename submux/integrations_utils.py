"""
Post-batch integrations (Jellyfin library refresh).

Muxing a subtitle or changing default tracks rewrites the container, which
Jellyfin only notices on its next scan. When a server is configured and a
batch changed at least one file, a full library refresh is requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

import requests

from submux.config import get_settings
from submux.logs_utils import log_title, safe_push_log

if TYPE_CHECKING:
    from submux.batch import BatchReport


DEFAULT_TIMEOUT = 10


@dataclass(frozen=True)
class JellyfinScanResult:
    """Result of a Jellyfin library refresh attempt."""

    success: bool
    message: str
    status_code: Optional[int] = None


def trigger_jellyfin_library_scan(
    base_url: str,
    api_key: str,
    session: Optional[requests.Session] = None,
    log: Optional[Callable[[str], None]] = None,
) -> JellyfinScanResult:
    """
    Ask Jellyfin to rescan all libraries.

    Args:
        base_url: Server URL (e.g., http://jellyfin.local:8096)
        api_key: API key sent as X-Emby-Token
        session: Optional requests Session (tests pass a stub)
        log: Optional callable for diagnostic lines

    Returns:
        JellyfinScanResult; request errors are reported, never raised
    """
    if not base_url or not api_key:
        return JellyfinScanResult(
            success=False,
            message="Missing Jellyfin base URL or API key.",
        )

    logger = log or (lambda _: None)
    client = session or requests.Session()
    refresh_endpoint = f"{base_url.rstrip('/')}/Library/Refresh"

    try:
        logger(f"POST {refresh_endpoint} (full library scan)")
        response = client.post(
            refresh_endpoint,
            headers={"X-Emby-Token": api_key.strip()},
            timeout=DEFAULT_TIMEOUT,
        )
    except requests.RequestException as exc:
        error_message = f"Jellyfin refresh request failed: {exc}"
        logger(error_message)
        return JellyfinScanResult(success=False, message=error_message)

    if 200 <= response.status_code < 300:
        return JellyfinScanResult(
            success=True,
            message="Jellyfin library refresh triggered successfully.",
            status_code=response.status_code,
        )

    body = (getattr(response, "text", "") or "").strip()
    failure_message = (
        f"Jellyfin refresh failed with status {response.status_code}. {body}"
    ).strip()
    logger(failure_message)
    return JellyfinScanResult(
        success=False,
        message=failure_message,
        status_code=response.status_code,
    )


def post_batch_actions(
    report: BatchReport,
    log: Callable[[str], None] = safe_push_log,
    session: Optional[requests.Session] = None,
) -> Optional[JellyfinScanResult]:
    """
    Refresh the media server after a batch that changed files.

    Returns:
        The scan result, or None when nothing was requested (no server
        configured or no file changed)
    """
    settings = get_settings()
    if not (settings.JELLYFIN_BASE_URL and settings.JELLYFIN_API_KEY):
        return None
    if report.changed_count == 0:
        return None

    log("")
    log_title("📡 Jellyfin Integration")
    result = trigger_jellyfin_library_scan(
        base_url=settings.JELLYFIN_BASE_URL,
        api_key=settings.JELLYFIN_API_KEY,
        session=session,
        log=log,
    )
    log(result.message if result.success else f"⚠️ {result.message}")
    return result
