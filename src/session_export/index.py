"""Build the index.md summary for one export run."""

import os
from collections import Counter
from pathlib import Path

from .core import ExportedDocument

INDEX_FILENAME = "index.md"


def build_index(documents: list[ExportedDocument], output_dir: Path) -> str:
    """Render one table per project plus a tag histogram.

    Projects appear in the order they were first exported. The index is
    derived from ``documents`` alone and rebuilt from scratch every run.
    """
    lines = ["# Claude Code Sessions", ""]
    lines.append(f"**Sessions:** {len(documents)}")

    groups: dict[str, list[ExportedDocument]] = {}
    for doc in documents:
        groups.setdefault(doc.project_path, []).append(doc)
    lines.append(f"**Projects:** {len(groups)}")
    lines.append("")

    for project_path, docs in groups.items():
        lines.extend([f"## {project_path}", ""])
        lines.append("| Date | Title | Tags | File |")
        lines.append("|------|-------|------|------|")
        for doc in docs:
            date = doc.started.strftime("%Y-%m-%d") if doc.started else ""
            tags = ", ".join(doc.tags.all())
            link = _relative_link(doc.path, output_dir)
            lines.append(f"| {date} | {_cell(doc.title)} | {_cell(tags)} | [{_cell(doc.filename)}]({link}) |")
        lines.append("")

    histogram = tag_histogram(documents)
    lines.extend(["## Tags", ""])
    if histogram:
        lines.append("| Tag | Sessions |")
        lines.append("|-----|----------|")
        for tag, count in histogram:
            lines.append(f"| {tag} | {count} |")
    else:
        lines.append("*No tags.*")
    lines.append("")

    return "\n".join(lines)


def tag_histogram(documents: list[ExportedDocument]) -> list[tuple[str, int]]:
    """Tag counts across documents, most frequent first, ties by name."""
    counts = Counter(tag for doc in documents for tag in doc.tags.all())
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def _relative_link(path: Path, output_dir: Path) -> str:
    try:
        rel = os.path.relpath(path, output_dir)
    except ValueError:
        rel = str(path)
    return rel.replace(os.sep, "/").replace(" ", "%20")


def _cell(text: str) -> str:
    return " ".join(text.split()).replace("|", "\\|")
