"""Core data models for session-export."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class IndexRecord:
    """One line of the global history index (~/.claude/history.jsonl)."""

    display: str  # prompt preview as typed by the user
    timestamp: datetime  # converted from epoch-milliseconds, UTC
    project: str  # absolute project path
    session_id: str
    line_number: int = 0


@dataclass(frozen=True)
class DecodedPath:
    """Result of decoding an encoded project directory name.

    The encoding is lossy, so decoding yields every existing path the name
    could stand for. Callers must check ``resolved`` before trusting ``path``.
    """

    encoded: str  # raw directory name, e.g. "-home-u-reporting"
    naive: str  # every substitute replaced by a separator
    candidates: tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return len(self.candidates) == 1

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1

    @property
    def path(self) -> Optional[str]:
        return self.candidates[0] if self.resolved else None

    @property
    def display_path(self) -> str:
        return self.path or self.naive


@dataclass
class Project:
    """A directory under the sessions root holding session logs."""

    id: str  # encoded directory name
    decoded: DecodedPath
    directory: Path
    session_count: int = 0
    last_modified: Optional[datetime] = None

    @property
    def display_path(self) -> str:
        return self.decoded.display_path

    @property
    def resolved(self) -> bool:
        return self.decoded.resolved


@dataclass
class SessionFile:
    """A single session log on disk."""

    session_id: str
    project_id: str
    path: Path
    modified: Optional[datetime] = None
    size: int = 0
    preview: str = ""  # first prompt from the history index, if any


@dataclass
class ContentBlock:
    """One typed block inside a user or assistant message."""

    kind: str  # "text" | "tool_use" | "tool_result" | "thinking" | "unknown"
    text: str = ""
    tool_name: str = ""
    tool_input: dict = field(default_factory=dict)
    tool_use_id: str = ""
    is_error: bool = False
    raw_type: str = ""  # original block tag, kept for unknown blocks


@dataclass
class SessionRecord:
    """One line of a per-session log."""

    kind: str  # "user" | "assistant" | "summary" | "file-history-snapshot" | "system" | "unknown"
    uuid: str = ""
    parent_uuid: Optional[str] = None
    timestamp: Optional[datetime] = None
    blocks: list[ContentBlock] = field(default_factory=list)
    summary: str = ""
    git_branch: str = ""
    cwd: str = ""
    line_number: int = 0

    @property
    def is_message(self) -> bool:
        return self.kind in ("user", "assistant")

    @property
    def text(self) -> str:
        """Plain text of the record's text blocks."""
        return "\n".join(b.text for b in self.blocks if b.kind == "text" and b.text.strip())


@dataclass
class ConversationThread:
    """Chronologically ordered user/assistant records of one session."""

    session_id: str
    title: str
    records: list[SessionRecord] = field(default_factory=list)
    started: Optional[datetime] = None
    ended: Optional[datetime] = None
    branch: str = ""
    cwd: str = ""


@dataclass(frozen=True)
class TagSet:
    """Auto-derived and user-supplied labels for an exported document."""

    auto: frozenset = frozenset()
    custom: frozenset = frozenset()

    def all(self) -> list[str]:
        return sorted(self.auto) + sorted(self.custom - self.auto)

    def __len__(self) -> int:
        return len(self.auto | self.custom)


@dataclass(frozen=True)
class ExportWarning:
    """A non-fatal problem recorded during a run."""

    kind: str  # "malformed-line" | "missing-file" | "permission" | "ambiguous-path" | "unresolved-path" | "write-failed" | "render-failed"
    source: str
    message: str
    line_number: Optional[int] = None
    hint: Optional[str] = None

    def __str__(self) -> str:
        location = self.source
        if self.line_number is not None:
            location = f"{location}:{self.line_number}"
        text = f"{location}: {self.message}"
        if self.hint:
            text = f"{text} ({self.hint})"
        return text


@dataclass
class ExportedDocument:
    """A Markdown file written for one session."""

    session_id: str
    project_path: str
    title: str
    path: Path
    tags: TagSet = field(default_factory=TagSet)
    started: Optional[datetime] = None

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass
class ExportResult:
    """Everything produced by one export run."""

    documents: list[ExportedDocument] = field(default_factory=list)
    warnings: list[ExportWarning] = field(default_factory=list)
    index_path: Optional[Path] = None
