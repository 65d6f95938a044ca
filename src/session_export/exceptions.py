"""Exceptions raised by session-export."""

from pathlib import Path


class SessionExportError(Exception):
    """Base class for session-export errors."""


class SessionLoadError(SessionExportError):
    """A session log could not be opened."""

    hint = ""

    def __init__(self, path: Path, reason: str = ""):
        self.path = Path(path)
        self.reason = reason
        message = f"Cannot open session log {self.path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SessionNotFoundError(SessionLoadError):
    """The session log does not exist."""

    hint = "the session may have been deleted; refresh the session list"


class SessionPermissionError(SessionLoadError):
    """The session log exists but is not readable."""

    hint = "check the file's permissions (e.g. chmod u+r)"


class OutputDirectoryError(SessionExportError):
    """The export directory cannot be created or written to. Aborts the run."""

    def __init__(self, path: Path, reason: str = ""):
        self.path = Path(path)
        self.reason = reason
        message = f"Export directory {self.path} is not writable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
