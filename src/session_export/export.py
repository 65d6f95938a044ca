"""Render a conversation thread as a Markdown document.

Layout:

    ---                      YAML front matter (title, session, project,
    ...                      start/end, branch, tags)
    ---
    # Title                  human-readable header
    **Project:** ...
    ---
    ## User (2026-01-31 14:40:00)
    ...
    ## Assistant (2026-01-31 14:40:12)
    ...

Rendering is a pure function of its inputs, so re-exporting the same
session with the same options gives byte-identical output.
"""

import json
import re
from datetime import datetime
from typing import Optional

import yaml

from .core import ContentBlock, ConversationThread, SessionRecord, TagSet

OUTPUT_LINE_LIMIT = 100
OUTPUT_HEAD_LINES = 80
OUTPUT_TAIL_LINES = 20

TS_FORMAT = "%Y-%m-%d %H:%M:%S"


def session_to_markdown(
    thread: ConversationThread,
    tags: TagSet,
    project_path: str,
    include_tool_output: bool = False,
) -> str:
    """Export a thread and its metadata as Markdown."""
    lines = [render_front_matter(thread, tags, project_path), f"# {thread.title}", ""]

    lines.append(f"**Project:** `{project_path}`")
    lines.append(f"**Session:** `{thread.session_id}`")
    if thread.started:
        date = thread.started.strftime(TS_FORMAT)
        if thread.ended and thread.ended != thread.started:
            date = f"{date} to {thread.ended.strftime(TS_FORMAT)}"
        lines.append(f"**Date:** {date} UTC")
    if thread.branch:
        lines.append(f"**Branch:** `{thread.branch}`")
    if len(tags):
        lines.append(f"**Tags:** {', '.join(tags.all())}")
    lines.extend(["", "---", ""])

    results = _tool_results(thread.records)
    called = {b.tool_use_id for r in thread.records for b in r.blocks if b.kind == "tool_use" and b.tool_use_id}

    for record in thread.records:
        body = _render_record(record, results, called, include_tool_output)
        if not body:
            continue
        role_label = record.kind.capitalize()
        ts = ""
        if record.timestamp:
            ts = f" ({record.timestamp.strftime(TS_FORMAT)})"
        lines.append(f"## {role_label}{ts}")
        lines.append("")
        lines.append(body)
        lines.extend(["", "---", ""])

    return "\n".join(lines)


def render_front_matter(thread: ConversationThread, tags: TagSet, project_path: str) -> str:
    data = {
        "title": thread.title,
        "session_id": thread.session_id,
        "project": project_path,
        "started": _iso(thread.started),
        "ended": _iso(thread.ended),
        "branch": thread.branch or None,
        "tags": tags.all(),
    }
    dumped = yaml.safe_dump(data, allow_unicode=True, sort_keys=False, default_flow_style=False)
    return f"---\n{dumped}---\n"


def truncate_lines(lines: list[str]) -> tuple[list[str], int]:
    """Keep the head and tail of long output.

    Output of at most 100 lines is returned unchanged. Longer output keeps
    the first 80 and last 20 lines with one marker line in between; the
    second value is the exact number of omitted lines.
    """
    if len(lines) <= OUTPUT_LINE_LIMIT:
        return list(lines), 0
    omitted = len(lines) - OUTPUT_HEAD_LINES - OUTPUT_TAIL_LINES
    kept = lines[:OUTPUT_HEAD_LINES] + [f"... {omitted} lines omitted ..."] + lines[-OUTPUT_TAIL_LINES:]
    return kept, omitted


def render_output(text: str, in_tool_call: bool = True, is_error: bool = False) -> str:
    """Render tool output, collapsed when long or when attached to a tool call."""
    lines = text.splitlines()
    if not lines:
        return "*(empty output)*"

    shown, omitted = truncate_lines(lines)
    block = fence("\n".join(shown))
    if not in_tool_call and not omitted:
        return block

    label = "Error output" if is_error else "Output"
    summary = f"{label} ({len(lines)} lines"
    if omitted:
        summary += f", {omitted} omitted"
    summary += ")"
    return f"<details>\n<summary>{summary}</summary>\n\n{block}\n\n</details>"


def fence(text: str, lang: str = "") -> str:
    """Wrap text in a code fence longer than any backtick run inside it."""
    longest = max((len(m) for m in re.findall(r"`+", text)), default=0)
    ticks = "`" * max(3, longest + 1)
    return f"{ticks}{lang}\n{text}\n{ticks}"


# ── Tool templates ───────────────────────────────────────────────


def render_tool_use(block: ContentBlock) -> str:
    """Render a tool invocation; unknown tools get a generic block."""
    renderer = TOOL_TEMPLATES.get(block.tool_name)
    if renderer is None:
        return _render_generic(block.tool_input, block.tool_name)
    try:
        return renderer(block.tool_input)
    except (AttributeError, TypeError, KeyError):
        return _render_generic(block.tool_input, block.tool_name)


def _render_bash(inp: dict) -> str:
    out = "**Bash**"
    desc = inp.get("description")
    if desc:
        out += f" *{desc}*"
    return f"{out}\n\n{fence(str(inp.get('command', '')), 'bash')}"


def _render_read(inp: dict) -> str:
    out = f"**Read** `{inp.get('file_path', '')}`"
    offset, limit = inp.get("offset"), inp.get("limit")
    if offset is not None or limit is not None:
        out += f" (offset {offset or 0}, limit {limit if limit is not None else 'all'})"
    return out


def _render_write(inp: dict) -> str:
    content = str(inp.get("content", ""))
    shown, _ = truncate_lines(content.splitlines())
    return f"**Write** `{inp.get('file_path', '')}`\n\n{fence(chr(10).join(shown))}"


def _render_search(name: str, inp: dict) -> str:
    out = f"**{name}** `{inp.get('pattern', '')}`"
    if inp.get("path"):
        out += f" in `{inp['path']}`"
    if inp.get("glob"):
        out += f" (files `{inp['glob']}`)"
    return out


def _render_edit(inp: dict) -> str:
    return (
        f"**Edit** `{inp.get('file_path', '')}`\n\n"
        f"Replaced:\n\n{fence(str(inp.get('old_string', '')))}\n\n"
        f"With:\n\n{fence(str(inp.get('new_string', '')))}"
    )


def _render_multi_edit(inp: dict) -> str:
    parts = [f"**MultiEdit** `{inp.get('file_path', '')}`"]
    for i, edit in enumerate(inp.get("edits", []), 1):
        parts.append(
            f"Edit {i} replaced:\n\n{fence(str(edit.get('old_string', '')))}\n\n"
            f"With:\n\n{fence(str(edit.get('new_string', '')))}"
        )
    return "\n\n".join(parts)


def _render_generic(inp: dict, name: str = "unknown") -> str:
    dumped = json.dumps(inp, indent=2, sort_keys=True, ensure_ascii=False, default=str)
    return f"**Tool: {name}**\n\n{fence(dumped, 'json')}"


TOOL_TEMPLATES = {
    "Bash": _render_bash,
    "Read": _render_read,
    "Write": _render_write,
    "Grep": lambda inp: _render_search("Grep", inp),
    "Glob": lambda inp: _render_search("Glob", inp),
    "Edit": _render_edit,
    "MultiEdit": _render_multi_edit,
}


# ── Private helpers ──────────────────────────────────────────────


def _render_record(
    record: SessionRecord,
    results: dict[str, ContentBlock],
    called: set[str],
    include_tool_output: bool,
) -> str:
    parts = []
    for block in record.blocks:
        if block.kind == "text":
            parts.append(block.text)

        elif block.kind == "thinking":
            parts.append(f"<details>\n<summary>Thinking</summary>\n\n{fence(block.text)}\n\n</details>")

        elif block.kind == "tool_use":
            rendered = render_tool_use(block)
            result = results.get(block.tool_use_id)
            if result is not None:
                rendered += "\n\n" + _render_result(result, True, include_tool_output)
            parts.append(rendered)

        elif block.kind == "tool_result":
            # Results are shown under the call that produced them.
            if block.tool_use_id in called:
                continue
            parts.append(_render_result(block, False, include_tool_output))

        else:
            note = f"*[unsupported block: {block.raw_type or 'unknown'}]*"
            if block.text:
                note += f"\n\n{block.text}"
            parts.append(note)

    return "\n\n".join(parts)


def _render_result(block: ContentBlock, in_tool_call: bool, include_tool_output: bool) -> str:
    if not include_tool_output:
        count = len(block.text.splitlines())
        label = "error output" if block.is_error else "output"
        return f"*({label}: {count} lines, not included)*"
    return render_output(block.text, in_tool_call=in_tool_call, is_error=block.is_error)


def _tool_results(records: list[SessionRecord]) -> dict[str, ContentBlock]:
    results = {}
    for record in records:
        for block in record.blocks:
            if block.kind == "tool_result" and block.tool_use_id and block.tool_use_id not in results:
                results[block.tool_use_id] = block
    return results


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
