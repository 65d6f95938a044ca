"""Assemble session records into a chronological conversation thread."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from .core import ConversationThread, SessionRecord

TITLE_LIMIT = 50
ELLIPSIS = "..."
UNTITLED = "Untitled session"

# Tool input keys that name files.
PATH_KEYS = ("file_path", "path", "notebook_path")

_MIN_TS = datetime.min.replace(tzinfo=timezone.utc)


def assemble_thread(
    session_id: str,
    records: list[SessionRecord],
    include_thinking: bool = False,
) -> ConversationThread:
    """Build the thread for one session.

    Keeps every user/assistant record and sorts them by timestamp. The sort
    is stable, so records with equal timestamps stay in file order.
    """
    messages = [r for r in records if r.is_message]
    effective = _effective_timestamps(messages, records)
    order = sorted(range(len(messages)), key=lambda i: effective[i])
    ordered = [messages[i] for i in order]

    if not include_thinking:
        ordered = [_without_thinking(r) for r in ordered]

    known = [r.timestamp for r in ordered if r.timestamp is not None]
    return ConversationThread(
        session_id=session_id,
        title=derive_title(records),
        records=ordered,
        started=min(known) if known else None,
        ended=max(known) if known else None,
        branch=next((r.git_branch for r in records if r.git_branch), ""),
        cwd=next((r.cwd for r in records if r.cwd), ""),
    )


def derive_title(records: list[SessionRecord]) -> str:
    """Title from the first summary record, else the first user prompt."""
    for record in records:
        if record.kind == "summary" and record.summary.strip():
            return " ".join(record.summary.split())

    for record in records:
        if record.kind == "user":
            text = " ".join(record.text.split())
            if text:
                return truncate_title(text)

    return UNTITLED


def truncate_title(text: str, limit: int = TITLE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + ELLIPSIS


def classification_text(thread: ConversationThread, preview: str = "") -> str:
    """Concatenate file paths, shell commands and user text from the thread."""
    parts = [preview] if preview else []
    for record in thread.records:
        for block in record.blocks:
            if block.kind == "text" and record.kind == "user":
                parts.append(block.text)
            elif block.kind == "tool_use":
                for key in PATH_KEYS:
                    value = block.tool_input.get(key)
                    if isinstance(value, str) and value:
                        parts.append(value)
                command = block.tool_input.get("command")
                if isinstance(command, str) and command:
                    parts.append(command)
    return "\n".join(parts)


def _effective_timestamps(
    messages: list[SessionRecord],
    records: list[SessionRecord],
) -> list[datetime]:
    """Timestamp of each record, borrowing one when it is missing.

    A record without a timestamp takes its predecessor's (via parent_uuid),
    else the previous record's in file order.
    """
    by_uuid = {r.uuid: r for r in records if r.uuid}
    resolved: dict[str, datetime] = {}
    result = []
    previous = _MIN_TS

    for record in messages:
        ts = record.timestamp or _from_parent(record, by_uuid, resolved) or previous
        if record.uuid:
            resolved[record.uuid] = ts
        result.append(ts)
        previous = ts

    return result


def _from_parent(
    record: SessionRecord,
    by_uuid: dict[str, SessionRecord],
    resolved: dict[str, datetime],
) -> Optional[datetime]:
    seen = set()
    parent_id = record.parent_uuid
    while parent_id and parent_id not in seen:
        seen.add(parent_id)
        if parent_id in resolved:
            return resolved[parent_id]
        parent = by_uuid.get(parent_id)
        if parent is None:
            return None
        if parent.timestamp is not None:
            return parent.timestamp
        parent_id = parent.parent_uuid
    return None


def _without_thinking(record: SessionRecord) -> SessionRecord:
    if not any(b.kind == "thinking" for b in record.blocks):
        return record
    return replace(record, blocks=[b for b in record.blocks if b.kind != "thinking"])
