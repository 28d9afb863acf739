"""
Error kinds raised by the container inspection and mutation layers.

Every error is recoverable at the job boundary: the pipeline catches
SubMuxError, logs it and abandons the job without stopping the batch.
"""

from typing import Optional


class SubMuxError(Exception):
    """Base class for all SubMux failures."""


class InspectionError(SubMuxError):
    """The container identify call failed or printed unparseable JSON."""


class UnknownLanguageError(SubMuxError):
    """A language name is not in the language table (names are case-sensitive)."""

    def __init__(self, language_name: str):
        self.language_name = language_name
        super().__init__(
            f"Unknown language name: {language_name!r}. "
            "Language must be capitalized, for example: Persian, English"
        )


class TrackNotFoundError(SubMuxError):
    """A track uid vanished between inspection and edit."""

    def __init__(self, uid: int, container_path=None):
        self.uid = uid
        self.container_path = container_path
        super().__init__(f"Could not resolve track id for UID: {uid}")


class VerificationError(SubMuxError):
    """Post-mutation container state does not match what was requested."""


class ExternalToolError(SubMuxError):
    """An external tool exited non-zero, could not be spawned or timed out."""

    def __init__(
        self,
        message: str,
        cmd: Optional[list] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
        timed_out: bool = False,
    ):
        self.cmd = cmd or []
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out
        super().__init__(message)


class FileIntegrityError(SubMuxError):
    """A temp output is missing or empty, or a copy/rename failed."""
