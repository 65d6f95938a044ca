"""CLI entry point for session-export."""

import logging
from pathlib import Path

import click
import uvicorn

from .backends import get_provider
from .config import ExportOptions, get_default_output_path
from .core import Project, SessionFile
from .exceptions import OutputDirectoryError
from .pipeline import SessionExporter
from .provider import SessionProvider


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
def main(verbose: bool):
    """Export Claude Code sessions to cross-referenced Markdown."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
def projects():
    """List projects with session logs, most recent first."""
    provider = get_provider()
    found = provider.list_projects()
    if not found:
        click.echo(f"No projects found under {provider.get_base_path()}")
        return

    for i, project in enumerate(found, 1):
        click.echo(_describe_project(i, project))


@main.command()
@click.argument("project")
def sessions(project: str):
    """List session logs of PROJECT (encoded name, path or list number)."""
    provider = get_provider()
    selected = _find_project(provider, project)
    if selected is None:
        raise click.ClickException(f"Unknown project: {project}")

    for i, session in enumerate(provider.list_sessions(selected.id), 1):
        click.echo(_describe_session(i, session))


@main.command()
@click.option("--project", "project_ref", help="Project: encoded name, path or list number.")
@click.option("--session", "session_ids", multiple=True, help="Session ID (repeatable).")
@click.option("--all", "export_all", is_flag=True, help="Export every session of the project.")
@click.option("--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), help="Export directory.")
@click.option("--tag", "tags", multiple=True, help="Custom tag (repeatable, comma-separated allowed).")
@click.option("--include-tool-output/--no-tool-output", default=None, help="Render tool output blocks.")
@click.option("--include-thinking/--no-thinking", default=None, help="Render reasoning blocks.")
def export(project_ref, session_ids, export_all, output_dir, tags, include_tool_output, include_thinking):
    """Export sessions to Markdown; missing choices are asked interactively."""
    provider = get_provider()
    found = provider.list_projects()
    if not found:
        raise click.ClickException(f"No projects found under {provider.get_base_path()}")

    if project_ref is None:
        for i, project in enumerate(found, 1):
            click.echo(_describe_project(i, project))
        project_ref = click.prompt("Project number", default="1")

    project = _find_project(provider, project_ref, found)
    if project is None:
        raise click.ClickException(f"Unknown project: {project_ref}")
    if not project.resolved:
        click.echo(f"Warning: project path for {project.id} could not be verified", err=True)

    available = provider.list_sessions(project.id)
    selection = _select_sessions(available, session_ids, export_all)
    if not selection:
        raise click.ClickException("No sessions selected")

    if output_dir is None:
        output_dir = click.prompt(
            "Export directory",
            default=str(get_default_output_path()),
            type=click.Path(file_okay=False, path_type=Path),
        )
    if not tags:
        entered = click.prompt("Custom tags (comma-separated, blank for none)", default="", show_default=False)
        tags = (entered,) if entered else ()
    if include_tool_output is None:
        include_tool_output = click.confirm("Include full tool output?", default=False)
    if include_thinking is None:
        include_thinking = click.confirm("Include reasoning blocks?", default=False)

    options = ExportOptions(
        output_dir=output_dir,
        include_tool_output=include_tool_output,
        include_thinking=include_thinking,
        custom_tags=tuple(tags),
    )
    try:
        result = SessionExporter(provider, options).run(selection)
    except OutputDirectoryError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Exported {len(result.documents)} of {len(selection)} session(s) to {output_dir}")
    click.echo(f"Index: {result.index_path}")
    if result.warnings:
        click.echo(f"\n{len(result.warnings)} warning(s):", err=True)
        for warning in result.warnings:
            click.echo(f"  [{warning.kind}] {warning}", err=True)


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the preview web API."""
    click.echo(f"Starting session-export on http://{host}:{port}")
    uvicorn.run("session_export.server:app", host=host, port=port, reload=False)


# ── Private helpers ──────────────────────────────────────────────


def _find_project(
    provider: SessionProvider,
    ref: str,
    found: list[Project] | None = None,
) -> Project | None:
    if found is None:
        found = provider.list_projects()
    if ref.isdigit() and 1 <= int(ref) <= len(found):
        return found[int(ref) - 1]
    for project in found:
        if ref in (project.id, project.display_path) or ref in project.decoded.candidates:
            return project
    return None


def _select_sessions(
    available: list[SessionFile],
    session_ids: tuple[str, ...],
    export_all: bool,
) -> list[SessionFile]:
    if export_all:
        return list(available)

    if session_ids:
        by_id = {s.session_id: s for s in available}
        selection = []
        for session_id in session_ids:
            session = by_id.get(session_id) or next(
                (s for s in available if s.session_id.startswith(session_id)), None
            )
            if session is None:
                click.echo(f"Warning: session {session_id} not found", err=True)
                continue
            selection.append(session)
        return selection

    for i, session in enumerate(available, 1):
        click.echo(_describe_session(i, session))
    answer = click.prompt("Sessions (numbers separated by commas, or 'all')", default="all")
    if answer.strip().lower() == "all":
        return list(available)

    selection = []
    for part in answer.split(","):
        part = part.strip()
        if part.isdigit() and 1 <= int(part) <= len(available):
            selection.append(available[int(part) - 1])
        elif part:
            click.echo(f"Warning: ignoring invalid choice {part!r}", err=True)
    return selection


def _describe_project(number: int, project: Project) -> str:
    status = ""
    if project.decoded.ambiguous:
        status = " [ambiguous]"
    elif not project.resolved:
        status = " [unresolved]"
    modified = project.last_modified.strftime("%Y-%m-%d %H:%M") if project.last_modified else "-"
    return f"{number:3}. {project.display_path}{status}  ({project.session_count} sessions, last {modified})"


def _describe_session(number: int, session: SessionFile) -> str:
    modified = session.modified.strftime("%Y-%m-%d %H:%M") if session.modified else "-"
    preview = " ".join(session.preview.split())[:60]
    return f"{number:3}. {session.session_id[:8]}  {modified}  {preview}"
