"""Abstract base class for session log providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from .core import ExportWarning, IndexRecord, Project, SessionFile, SessionRecord


@dataclass
class LoadResult:
    """Records parsed from one session log, in file order."""

    records: list[SessionRecord] = field(default_factory=list)
    warnings: list[ExportWarning] = field(default_factory=list)


class SessionProvider(ABC):
    """Base class for assistant log backends.

    A backend knows where the assistant keeps its logs, how projects are
    laid out on disk, and how to parse one session log into records.
    """

    name: str  # "claude_code"

    @abstractmethod
    def get_base_path(self) -> Path:
        """Return the root directory where the assistant stores its data."""
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the assistant's data exists on this machine."""
        ...

    @abstractmethod
    def read_history(
        self,
        project: str | None = None,
        warnings: list[ExportWarning] | None = None,
    ) -> list[IndexRecord]:
        """Return global history records, optionally for one project path."""
        ...

    @abstractmethod
    def list_projects(self) -> list[Project]:
        """Return all projects with session logs, most recent first."""
        ...

    @abstractmethod
    def list_sessions(self, project_id: str) -> list[SessionFile]:
        """Return the session logs of one project, most recent first."""
        ...

    @abstractmethod
    def load_records(self, path: Path) -> LoadResult:
        """Parse one session log.

        Raises SessionNotFoundError or SessionPermissionError when the file
        cannot be opened.
        """
        ...

    def find_session(self, project_id: str, session_id: str) -> SessionFile | None:
        """Return one session log of a project, or None if it is not there."""
        for session in self.list_sessions(project_id):
            if session.session_id == session_id:
                return session
        return None
