"""Tests for conversation thread assembly."""

from datetime import datetime, timezone

from session_export.assembler import (
    UNTITLED,
    assemble_thread,
    classification_text,
    derive_title,
    truncate_title,
)
from session_export.backends.claude_code import ClaudeCodeProvider
from session_export.core import ContentBlock, SessionRecord

from conftest import SESSION_ID


def _ts(minute, second=0):
    return datetime(2026, 1, 31, 14, minute, second, tzinfo=timezone.utc)


def _msg(kind, uuid, ts=None, text="", parent=None, blocks=None):
    if blocks is None:
        blocks = [ContentBlock(kind="text", text=text)] if text else []
    return SessionRecord(kind=kind, uuid=uuid, parent_uuid=parent, timestamp=ts, blocks=blocks)


def _fixture_records(claude_home, encoded_project):
    path = claude_home / "projects" / encoded_project / f"{SESSION_ID}.jsonl"
    return ClaudeCodeProvider().load_records(path).records


class TestAssembleThread:
    def test_keeps_only_user_and_assistant(self, claude_home, encoded_project):
        records = _fixture_records(claude_home, encoded_project)
        thread = assemble_thread(SESSION_ID, records)
        expected = sum(1 for r in records if r.kind in ("user", "assistant"))
        assert len(thread.records) == expected
        assert all(r.kind in ("user", "assistant") for r in thread.records)

    def test_sorted_by_timestamp(self):
        records = [
            _msg("assistant", "b", _ts(2), "second"),
            _msg("user", "a", _ts(1), "first"),
            _msg("user", "c", _ts(3), "third"),
        ]
        thread = assemble_thread("s", records)
        timestamps = [r.timestamp for r in thread.records]
        assert timestamps == sorted(timestamps)
        assert [r.uuid for r in thread.records] == ["a", "b", "c"]

    def test_ties_keep_file_order(self):
        records = [
            _msg("user", "a", _ts(1), "one"),
            _msg("assistant", "b", _ts(1), "two"),
            _msg("user", "c", _ts(1), "three"),
        ]
        thread = assemble_thread("s", records)
        assert [r.uuid for r in thread.records] == ["a", "b", "c"]

    def test_missing_timestamp_follows_predecessor(self):
        records = [
            _msg("user", "a", _ts(1), "first"),
            _msg("user", "c", _ts(5), "later"),
            _msg("assistant", "b", None, "reply to first", parent="a"),
        ]
        thread = assemble_thread("s", records)
        assert [r.uuid for r in thread.records] == ["a", "b", "c"]

    def test_started_and_ended(self, claude_home, encoded_project):
        thread = assemble_thread(SESSION_ID, _fixture_records(claude_home, encoded_project))
        assert thread.started == datetime(2026, 1, 31, 14, 40, tzinfo=timezone.utc)
        assert thread.ended == datetime(2026, 1, 31, 14, 42, 30, tzinfo=timezone.utc)
        assert thread.branch == "main"
        assert thread.cwd == "/home/u/reporting"

    def test_thinking_dropped_by_default(self, claude_home, encoded_project):
        records = _fixture_records(claude_home, encoded_project)
        thread = assemble_thread(SESSION_ID, records)
        assert not any(b.kind == "thinking" for r in thread.records for b in r.blocks)

        # The input records are left untouched.
        assert any(b.kind == "thinking" for r in records for b in r.blocks)

    def test_thinking_kept_when_enabled(self, claude_home, encoded_project):
        thread = assemble_thread(SESSION_ID, _fixture_records(claude_home, encoded_project), include_thinking=True)
        assert any(b.kind == "thinking" for r in thread.records for b in r.blocks)

    def test_empty_session(self):
        thread = assemble_thread("s", [])
        assert thread.records == []
        assert thread.title == UNTITLED
        assert thread.started is None


class TestTitle:
    def test_summary_wins(self, claude_home, encoded_project):
        assert derive_title(_fixture_records(claude_home, encoded_project)) == "Fix pnl rounding bug"

    def test_first_user_message(self):
        records = [_msg("assistant", "a", text="hi"), _msg("user", "b", text="Explain\n  the   report")]
        assert derive_title(records) == "Explain the report"

    def test_truncated_to_fifty_characters(self):
        text = "x" * 60
        title = derive_title([_msg("user", "a", text=text)])
        assert title == "x" * 50 + "..."

    def test_exactly_fifty_characters_not_truncated(self):
        assert truncate_title("y" * 50) == "y" * 50

    def test_non_ascii_truncates_on_characters(self):
        title = truncate_title("é" * 60)
        assert title == "é" * 50 + "..."

    def test_tool_result_only_user_records_are_skipped(self):
        records = [
            _msg("user", "a", blocks=[ContentBlock(kind="tool_result", text="output")]),
            _msg("user", "b", text="real prompt"),
        ]
        assert derive_title(records) == "real prompt"


def test_classification_text(claude_home, encoded_project):
    thread = assemble_thread(SESSION_ID, _fixture_records(claude_home, encoded_project))
    text = classification_text(thread, preview="Fix pnl bug")
    assert "Fix pnl bug" in text
    assert "/home/u/reporting/reports/pnl.py" in text
    assert "pytest tests/test_pnl.py" in text
    # Assistant prose is not part of the classified text.
    assert "Totals are now rounded" not in text
