"""Claude Code session log backend.

Reads logs from the ~/.claude directory structure:

- history.jsonl: global index, one line per prompt typed by the user.
- projects/<encoded-path>/<session-id>.jsonl: one log per session.

JSONL entry types inside a session log:
- "user" or "human": User messages. Content can be a string or array of blocks.
  May also contain tool_result blocks (responses from tool execution).
- "assistant": AI responses. Content is an array of text, thinking and/or
  tool_use blocks.
- "summary": Title of a continued session.
- "file-history-snapshot", "system": Kept as records but not rendered.
- Anything else ("progress", "queue-operation", ...): recorded as "unknown".
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from ..config import get_claude_home
from ..core import ContentBlock, ExportWarning, IndexRecord, Project, SessionFile, SessionRecord
from ..exceptions import SessionNotFoundError, SessionPermissionError
from ..history import epoch_ms_to_datetime, iter_history, session_previews
from ..projects import decode_project_name
from ..provider import LoadResult, SessionProvider

logger = logging.getLogger(__name__)

RECORD_KINDS = ("user", "assistant", "summary", "file-history-snapshot", "system")

REDACTED_THINKING = "[redacted reasoning]"


class ClaudeCodeProvider(SessionProvider):
    """Provider for Claude Code session logs."""

    name = "claude_code"

    def get_base_path(self) -> Path:
        return get_claude_home()

    def get_projects_path(self) -> Path:
        return self.get_base_path() / "projects"

    def get_history_path(self) -> Path:
        return self.get_base_path() / "history.jsonl"

    def is_available(self) -> bool:
        return self.get_projects_path().is_dir()

    def read_history(
        self,
        project: str | None = None,
        warnings: list[ExportWarning] | None = None,
    ) -> list[IndexRecord]:
        return list(iter_history(self.get_history_path(), project=project, warnings=warnings))

    def list_projects(self) -> list[Project]:
        base = self.get_projects_path()
        if not base.is_dir():
            return []

        known_paths = {r.project for r in self.read_history() if r.project}

        projects = []
        for project_dir in sorted(base.iterdir()):
            if not project_dir.is_dir():
                continue

            session_count = 0
            newest = None
            for jsonl_file in project_dir.glob("*.jsonl"):
                session_count += 1
                modified = _mtime(jsonl_file)
                if modified and (newest is None or modified > newest):
                    newest = modified

            projects.append(Project(
                id=project_dir.name,
                decoded=decode_project_name(project_dir.name, known_paths),
                directory=project_dir,
                session_count=session_count,
                last_modified=newest,
            ))

        projects.sort(key=lambda p: p.last_modified or _epoch(), reverse=True)
        return projects

    def list_sessions(self, project_id: str) -> list[SessionFile]:
        project_dir = self._project_dir(project_id)
        if project_dir is None or not project_dir.is_dir():
            return []

        previews = session_previews(self.read_history())

        sessions = []
        for jsonl_file in sorted(project_dir.glob("*.jsonl")):
            try:
                size = jsonl_file.stat().st_size
            except OSError:
                size = 0
            sessions.append(SessionFile(
                session_id=jsonl_file.stem,
                project_id=project_id,
                path=jsonl_file,
                modified=_mtime(jsonl_file),
                size=size,
                preview=previews.get(jsonl_file.stem, ""),
            ))

        sessions.sort(key=lambda s: s.modified or _epoch(), reverse=True)
        return sessions

    def load_records(self, path: Path) -> LoadResult:
        """Parse a session's JSONL file into records, in file order.

        A bad line never aborts the read: it is skipped and reported as a
        warning with its 1-based line number.
        """
        result = LoadResult()

        try:
            f = path.open("rb")
        except FileNotFoundError as e:
            raise SessionNotFoundError(path, e.strerror or "") from e
        except PermissionError as e:
            raise SessionPermissionError(path, e.strerror or "") from e
        except IsADirectoryError as e:
            raise SessionNotFoundError(path, "is a directory") from e

        with f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    text = line.decode("utf-8")
                except UnicodeDecodeError as e:
                    logger.debug("Undecodable bytes at %s:%d: %s", path, line_num, e)
                    result.warnings.append(ExportWarning(
                        kind="malformed-line",
                        source=str(path),
                        message=f"line is not valid UTF-8 (byte offset {e.start})",
                        line_number=line_num,
                    ))
                    continue
                try:
                    entry = json.loads(text)
                except json.JSONDecodeError as e:
                    logger.debug("Bad JSON at %s:%d: %s", path, line_num, e)
                    result.warnings.append(ExportWarning(
                        kind="malformed-line",
                        source=str(path),
                        message=f"invalid JSON skipped ({e.msg})",
                        line_number=line_num,
                    ))
                    continue
                if not isinstance(entry, dict):
                    logger.debug("Non-object entry at %s:%d", path, line_num)
                    result.warnings.append(ExportWarning(
                        kind="malformed-line",
                        source=str(path),
                        message="entry is not a JSON object",
                        line_number=line_num,
                    ))
                    continue

                result.records.append(self._entry_to_record(entry, line_num))

        return result

    # ── Private helpers ──────────────────────────────────────────────

    def _project_dir(self, project_id: str) -> Path | None:
        if not project_id or project_id in (".", "..") or "/" in project_id or "\\" in project_id:
            return None
        return self.get_projects_path() / project_id

    def _entry_to_record(self, entry: dict, line_num: int) -> SessionRecord:
        entry_type = entry.get("type", "")
        if entry_type == "human":
            entry_type = "user"
        kind = entry_type if entry_type in RECORD_KINDS else "unknown"

        parent = entry.get("parentUuid")
        record = SessionRecord(
            kind=kind,
            uuid=str(entry.get("uuid") or ""),
            parent_uuid=str(parent) if parent else None,
            timestamp=parse_timestamp(entry.get("timestamp")),
            git_branch=_str(entry.get("gitBranch")),
            cwd=_str(entry.get("cwd")),
            line_number=line_num,
        )

        if kind == "summary":
            record.summary = _str(entry.get("summary"))
        elif kind in ("user", "assistant"):
            msg_data = entry.get("message")
            content = msg_data.get("content", []) if isinstance(msg_data, dict) else []
            record.blocks = _parse_content(content)

        return record


def _parse_content(content) -> list[ContentBlock]:
    """Classify message content into typed blocks.

    Content is either a plain string or a list of blocks tagged by "type".
    Unrecognised blocks are kept as "unknown" so nothing is lost.
    """
    if isinstance(content, str):
        if content.strip():
            return [ContentBlock(kind="text", text=content)]
        return []
    if not isinstance(content, list):
        return []

    blocks = []
    for block in content:
        if isinstance(block, str):
            if block.strip():
                blocks.append(ContentBlock(kind="text", text=block))
            continue
        if not isinstance(block, dict):
            continue

        block_type = block.get("type", "")

        if block_type == "text":
            text = _str(block.get("text"))
            if text.strip():
                blocks.append(ContentBlock(kind="text", text=text))

        elif block_type == "tool_use":
            tool_input = block.get("input")
            blocks.append(ContentBlock(
                kind="tool_use",
                tool_name=_str(block.get("name")) or "unknown",
                tool_input=tool_input if isinstance(tool_input, dict) else {},
                tool_use_id=_str(block.get("id")),
                raw_type=block_type,
            ))

        elif block_type == "tool_result":
            blocks.append(ContentBlock(
                kind="tool_result",
                text=_tool_result_text(block.get("content", "")),
                tool_use_id=_str(block.get("tool_use_id")),
                is_error=bool(block.get("is_error", False)),
                raw_type=block_type,
            ))

        elif block_type == "thinking":
            text = _str(block.get("thinking"))
            if text.strip():
                blocks.append(ContentBlock(kind="thinking", text=text, raw_type=block_type))

        elif block_type == "redacted_thinking":
            # Payload is encrypted in "data"; only its presence is kept.
            blocks.append(ContentBlock(kind="thinking", text=REDACTED_THINKING, raw_type=block_type))

        else:
            blocks.append(ContentBlock(kind="unknown", text=_str(block.get("text")), raw_type=str(block_type)))

    return blocks


def _tool_result_text(content) -> str:
    """Flatten tool_result content (string or list of blocks) to text."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return str(content) if content else ""

    parts = []
    for sub in content:
        if isinstance(sub, dict):
            sub_type = sub.get("type", "")
            if sub_type == "text":
                parts.append(_str(sub.get("text")))
            elif sub_type == "image":
                parts.append("[Image]")
            else:
                # Unknown block type: try the text field
                text = _str(sub.get("text"))
                if text:
                    parts.append(text)
        elif isinstance(sub, str):
            parts.append(sub)
    return "\n".join(parts)


def parse_timestamp(value) -> datetime | None:
    """Parse a session-log timestamp into an aware UTC datetime.

    Session logs use ISO-8601 strings; integers are treated as
    epoch-milliseconds like the history index.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return epoch_ms_to_datetime(value)
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _str(value) -> str:
    return value if isinstance(value, str) else ""


def _mtime(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return None


def _epoch() -> datetime:
    return datetime(1970, 1, 1, tzinfo=timezone.utc)
