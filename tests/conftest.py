"""Shared test fixtures for session-export."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from session_export.projects import encode_project_path

SESSION_ID = "c74f37ab-1d2e-4f00-9a6b-0123456789ab"
SECOND_SESSION_ID = "5e1a9c02-77aa-4b1c-8e2d-fedcba987654"


def write_jsonl(path: Path, entries: list) -> Path:
    """Write entries as JSON Lines; strings are written verbatim."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [e if isinstance(e, str) else json.dumps(e) for e in entries]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def epoch_ms(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def session_entries() -> list[dict]:
    """A realistic Claude Code session log.

    Includes:
    - A summary record (title)
    - User text, assistant text + tool_use in the same entry
    - tool_result entries carried by user records
    - A thinking block, an Edit, a Grep and an unknown tool
    - file-history-snapshot and system entries (not rendered)
    """
    return [
        {"type": "summary", "summary": "Fix pnl rounding bug", "leafUuid": "uuid-008"},
        {"type": "file-history-snapshot", "messageId": "snap-1", "snapshot": {}},
        {
            "type": "user",
            "uuid": "uuid-001",
            "parentUuid": None,
            "timestamp": "2026-01-31T14:40:00.000Z",
            "gitBranch": "main",
            "cwd": "/home/u/reporting",
            "message": {"role": "user", "content": "Fix the pnl bug in reports/pnl.py, totals are off by a cent"},
        },
        {
            "type": "assistant",
            "uuid": "uuid-002",
            "parentUuid": "uuid-001",
            "timestamp": "2026-01-31T14:40:05.000Z",
            "message": {"role": "assistant", "content": [
                {"type": "thinking", "thinking": "Probably float rounding in the aggregation step."},
                {"type": "text", "text": "Let me look at the report code."},
                {"type": "tool_use", "id": "toolu_001", "name": "Read", "input": {"file_path": "/home/u/reporting/reports/pnl.py"}},
            ]},
        },
        {
            "type": "user",
            "uuid": "uuid-003",
            "parentUuid": "uuid-002",
            "timestamp": "2026-01-31T14:40:06.000Z",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": "toolu_001", "content": "def total(rows):\n    return sum(r.amount for r in rows)"},
            ]},
        },
        {
            "type": "assistant",
            "uuid": "uuid-004",
            "parentUuid": "uuid-003",
            "timestamp": "2026-01-31T14:41:00.000Z",
            "message": {"role": "assistant", "content": [
                {"type": "tool_use", "id": "toolu_002", "name": "Edit", "input": {
                    "file_path": "/home/u/reporting/reports/pnl.py",
                    "old_string": "return sum(r.amount for r in rows)",
                    "new_string": "return round(sum(r.amount for r in rows), 2)",
                }},
                {"type": "tool_use", "id": "toolu_003", "name": "Grep", "input": {"pattern": "def total", "path": "reports"}},
            ]},
        },
        {"type": "system", "uuid": "sys-1", "timestamp": "2026-01-31T14:41:01.000Z", "content": "hook ran"},
        {
            "type": "user",
            "uuid": "uuid-005",
            "parentUuid": "uuid-004",
            "timestamp": "2026-01-31T14:41:02.000Z",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": "toolu_002", "content": "File edited successfully"},
                {"type": "tool_result", "tool_use_id": "toolu_003", "content": [{"type": "text", "text": "reports/pnl.py:1:def total(rows):"}]},
            ]},
        },
        {
            "type": "assistant",
            "uuid": "uuid-006",
            "parentUuid": "uuid-005",
            "timestamp": "2026-01-31T14:42:00.000Z",
            "message": {"role": "assistant", "content": [
                {"type": "tool_use", "id": "toolu_004", "name": "Bash", "input": {"command": "pytest tests/test_pnl.py", "description": "Run pnl tests"}},
            ]},
        },
        {
            "type": "user",
            "uuid": "uuid-007",
            "parentUuid": "uuid-006",
            "timestamp": "2026-01-31T14:42:10.000Z",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": "toolu_004", "content": "3 passed in 0.12s"},
            ]},
        },
        {
            "type": "assistant",
            "uuid": "uuid-008",
            "parentUuid": "uuid-007",
            "timestamp": "2026-01-31T14:42:30.000Z",
            "message": {"role": "assistant", "content": [
                {"type": "text", "text": "Totals are now rounded to cents and the tests pass."},
                {"type": "tool_use", "id": "toolu_005", "name": "TodoWrite", "input": {"todos": [{"content": "done"}]}},
            ]},
        },
    ]


@pytest.fixture
def project_dir(tmp_path):
    """A real project directory, so its encoded name decodes unambiguously."""
    path = tmp_path / "work" / "reporting"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def claude_home(tmp_path, project_dir):
    """Create a synthetic ~/.claude directory with history and session logs."""
    home = tmp_path / "claude"
    encoded = encode_project_path(str(project_dir))
    sessions_dir = home / "projects" / encoded

    write_jsonl(sessions_dir / f"{SESSION_ID}.jsonl", session_entries())
    write_jsonl(sessions_dir / f"{SECOND_SESSION_ID}.jsonl", [
        {
            "type": "user",
            "uuid": "b-001",
            "parentUuid": None,
            "timestamp": "2026-02-02T09:00:00Z",
            "message": {"role": "user", "content": "Add a docker compose file for the dashboard service please"},
        },
        {
            "type": "assistant",
            "uuid": "b-002",
            "parentUuid": "b-001",
            "timestamp": "2026-02-02T09:00:20Z",
            "message": {"role": "assistant", "content": [{"type": "text", "text": "Here is a compose.yaml."}]},
        },
    ])

    write_jsonl(home / "history.jsonl", [
        {"display": "Fix pnl bug", "timestamp": epoch_ms(2026, 1, 31, 14, 40), "project": str(project_dir), "sessionId": SESSION_ID},
        {"display": "run the tests", "timestamp": epoch_ms(2026, 1, 31, 14, 42), "project": str(project_dir), "sessionId": SESSION_ID},
        {"display": "Add a docker compose file", "timestamp": epoch_ms(2026, 2, 2, 9, 0), "project": str(project_dir), "sessionId": SECOND_SESSION_ID},
        {"display": "other project", "timestamp": epoch_ms(2026, 2, 3, 9, 0), "project": "/elsewhere/app", "sessionId": "other-session"},
    ])

    return home


@pytest.fixture
def encoded_project(project_dir):
    return encode_project_path(str(project_dir))
