"""Reader for the global history index (~/.claude/history.jsonl).

Each line is one prompt typed by the user:

    {"display": "Fix pnl bug", "timestamp": 1769870400000,
     "project": "/home/u/reporting", "sessionId": "c74f37ab-..."}

``timestamp`` is epoch-milliseconds, unlike the ISO-8601 strings used inside
session logs. Both are normalised to timezone-aware UTC datetimes.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .core import ExportWarning, IndexRecord

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def iter_history(
    path: Path,
    project: Optional[str] = None,
    warnings: Optional[list[ExportWarning]] = None,
) -> Iterator[IndexRecord]:
    """Lazily yield index records, skipping malformed lines.

    Bad lines are appended to ``warnings`` (when given) with their 1-based
    line number. ``project`` keeps only records whose project path matches
    exactly.
    """
    if warnings is None:
        warnings = []

    try:
        f = path.open("rb")
    except FileNotFoundError:
        logger.debug("No history index at %s", path)
        warnings.append(ExportWarning(
            kind="missing-file",
            source=str(path),
            message="history index not found; session previews unavailable",
        ))
        return
    except PermissionError as e:
        logger.warning("Cannot read history index %s: %s", path, e)
        warnings.append(ExportWarning(
            kind="permission",
            source=str(path),
            message="history index is not readable",
            hint="check the file's permissions",
        ))
        return

    with f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            record = _parse_line(line, line_num)
            if record is None:
                logger.debug("Bad history line at %s:%d", path, line_num)
                warnings.append(ExportWarning(
                    kind="malformed-line",
                    source=str(path),
                    message="unparseable history entry skipped",
                    line_number=line_num,
                ))
                continue
            if project is not None and record.project != project:
                continue
            yield record


def session_previews(records: Iterable[IndexRecord]) -> dict[str, str]:
    """Map session ID to the first prompt preview recorded for it."""
    previews: dict[str, str] = {}
    for record in records:
        if record.display and record.session_id not in previews:
            previews[record.session_id] = record.display
    return previews


def session_projects(records: Iterable[IndexRecord]) -> dict[str, str]:
    """Map session ID to the project path recorded for it."""
    projects: dict[str, str] = {}
    for record in records:
        if record.project and record.session_id not in projects:
            projects[record.session_id] = record.project
    return projects


def _parse_line(line: bytes, line_num: int) -> Optional[IndexRecord]:
    try:
        entry = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(entry, dict):
        return None

    session_id = entry.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        return None

    display = entry.get("display")
    project = entry.get("project")
    return IndexRecord(
        display=display if isinstance(display, str) else "",
        timestamp=epoch_ms_to_datetime(entry.get("timestamp")),
        project=project if isinstance(project, str) else "",
        session_id=session_id,
        line_number=line_num,
    )


def epoch_ms_to_datetime(value) -> datetime:
    """Convert epoch-milliseconds to a UTC datetime (epoch on bad input)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return EPOCH
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return EPOCH
