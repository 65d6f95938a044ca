"""FastAPI preview server for session-export."""

import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from .backends import get_provider
from .config import ExportOptions, get_default_output_path
from .exceptions import OutputDirectoryError, SessionLoadError, SessionNotFoundError
from .pipeline import SessionExporter
from .provider import SessionProvider

logger = logging.getLogger(__name__)

app = FastAPI(title="session-export", version="0.1.0")

# Provider cache (populated on first request)
_provider: SessionProvider | None = None


def _get_provider() -> SessionProvider:
    """Lazily initialize and cache the provider."""
    global _provider
    if _provider is None:
        _provider = get_provider()
        logger.info("Using provider %s at %s", _provider.name, _provider.get_base_path())
    return _provider


class ExportRequest(BaseModel):
    project_id: str
    session_ids: list[str] = []
    output_dir: str | None = None
    include_tool_output: bool = False
    include_thinking: bool = False
    custom_tags: list[str] = []


def _project_to_dict(project) -> dict:
    return {
        "id": project.id,
        "display_path": project.display_path,
        "resolved": project.resolved,
        "ambiguous": project.decoded.ambiguous,
        "candidates": list(project.decoded.candidates),
        "session_count": project.session_count,
        "last_modified": project.last_modified.isoformat() if project.last_modified else None,
    }


def _session_to_dict(session) -> dict:
    return {
        "session_id": session.session_id,
        "project_id": session.project_id,
        "modified": session.modified.isoformat() if session.modified else None,
        "size": session.size,
        "preview": session.preview,
    }


def _warning_to_dict(warning) -> dict:
    return {
        "kind": warning.kind,
        "source": warning.source,
        "line_number": warning.line_number,
        "message": warning.message,
        "hint": warning.hint,
    }


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/projects")
async def get_projects():
    """Return all projects, most recent first."""
    return [_project_to_dict(p) for p in _get_provider().list_projects()]


@app.get("/api/projects/{project_id}/sessions")
async def get_sessions(project_id: str):
    """Return the sessions of one project."""
    provider = _get_provider()
    if not any(p.id == project_id for p in provider.list_projects()):
        raise HTTPException(status_code=404, detail=f"Unknown project: {project_id}")
    return [_session_to_dict(s) for s in provider.list_sessions(project_id)]


@app.get("/api/preview/{project_id}/{session_id}")
async def preview_session(
    project_id: str,
    session_id: str,
    include_tool_output: bool = Query(False, description="Render tool output"),
    include_thinking: bool = Query(False, description="Render reasoning blocks"),
):
    """Render one session as Markdown without writing anything."""
    provider = _get_provider()
    session = provider.find_session(project_id, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    options = ExportOptions(
        output_dir=get_default_output_path(),
        include_tool_output=include_tool_output,
        include_thinking=include_thinking,
    )
    try:
        rendered = SessionExporter(provider, options).render_session(session)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except SessionLoadError as e:
        raise HTTPException(status_code=403, detail=str(e))

    return Response(content=rendered.markdown, media_type="text/markdown")


@app.post("/api/export")
async def export_sessions(request: ExportRequest):
    """Export sessions of a project and return the written files."""
    provider = _get_provider()
    available = provider.list_sessions(request.project_id)
    if not available:
        raise HTTPException(status_code=404, detail=f"No sessions for project: {request.project_id}")

    if request.session_ids:
        wanted = set(request.session_ids)
        selection = [s for s in available if s.session_id in wanted]
    else:
        selection = available

    options = ExportOptions(
        output_dir=Path(request.output_dir) if request.output_dir else get_default_output_path(),
        include_tool_output=request.include_tool_output,
        include_thinking=request.include_thinking,
        custom_tags=tuple(request.custom_tags),
    )
    try:
        result = SessionExporter(provider, options).run(selection)
    except OutputDirectoryError as e:
        logger.error("Export aborted: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "index": str(result.index_path),
        "documents": [
            {
                "session_id": d.session_id,
                "title": d.title,
                "project_path": d.project_path,
                "file": str(d.path),
                "tags": d.tags.all(),
            }
            for d in result.documents
        ],
        "warnings": [_warning_to_dict(w) for w in result.warnings],
    }
