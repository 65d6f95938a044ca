"""Batch export of selected sessions to Markdown files plus an index.

Each session goes through the same linear steps:

    resolve project -> load records -> assemble thread -> classify tags
    -> render -> write

A failure in any step is recorded as a warning and the run moves on to the
next session. Only an unusable output directory aborts the run.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .assembler import assemble_thread, classification_text
from .config import ExportOptions
from .core import (
    ConversationThread,
    DecodedPath,
    ExportedDocument,
    ExportResult,
    ExportWarning,
    SessionFile,
    TagSet,
)
from .exceptions import OutputDirectoryError, SessionLoadError, SessionPermissionError
from .export import session_to_markdown
from .history import session_previews, session_projects
from .index import INDEX_FILENAME, build_index
from .projects import decode_project_name, encode_project_path, project_slug
from .provider import SessionProvider
from .tags import build_tag_set

logger = logging.getLogger(__name__)


@dataclass
class RenderedSession:
    """A session rendered in memory, not yet written."""

    session: SessionFile
    thread: ConversationThread
    tags: TagSet
    project_path: str
    markdown: str
    warnings: list[ExportWarning] = field(default_factory=list)


class SessionExporter:
    """Export sessions of one provider with fixed options."""

    def __init__(self, provider: SessionProvider, options: ExportOptions):
        self.provider = provider
        self.options = options
        self._previews: Optional[dict[str, str]] = None
        self._projects: dict[str, str] = {}
        self._known_paths: set[str] = set()
        self._decoded: dict[str, DecodedPath] = {}

    def run(self, selection: list[SessionFile]) -> ExportResult:
        """Export ``selection`` in order and write index.md.

        Raises OutputDirectoryError if the output directory is unusable.
        """
        result = ExportResult()
        output_dir = self._prepare_output_dir()
        self._load_history(result.warnings)

        used_names: set[str] = set()
        for session in selection:
            try:
                rendered = self.render_session(session)
            except SessionLoadError as e:
                logger.warning("Skipping session %s: %s", session.session_id, e)
                result.warnings.append(ExportWarning(
                    kind="permission" if isinstance(e, SessionPermissionError) else "missing-file",
                    source=str(e.path),
                    message=f"session {session.session_id} could not be read",
                    hint=e.hint,
                ))
                continue
            except Exception as e:
                logger.exception("Failed to render session %s", session.session_id)
                result.warnings.append(ExportWarning(
                    kind="render-failed",
                    source=str(session.path),
                    message=f"session {session.session_id} could not be rendered: {e}",
                ))
                continue

            result.warnings.extend(rendered.warnings)

            path = output_dir / self._filename(rendered, used_names)
            try:
                write_atomic(path, rendered.markdown)
            except OSError as e:
                logger.warning("Failed to write %s: %s", path, e)
                result.warnings.append(ExportWarning(
                    kind="write-failed",
                    source=str(path),
                    message=f"session {session.session_id} was not written: {e.strerror or e}",
                ))
                continue

            result.documents.append(ExportedDocument(
                session_id=session.session_id,
                project_path=rendered.project_path,
                title=rendered.thread.title,
                path=path,
                tags=rendered.tags,
                started=rendered.thread.started or session.modified,
            ))
            logger.info("Exported %s -> %s", session.session_id, path)

        index_path = output_dir / INDEX_FILENAME
        try:
            write_atomic(index_path, build_index(result.documents, output_dir))
        except OSError as e:
            raise OutputDirectoryError(output_dir, e.strerror or str(e)) from e
        result.index_path = index_path

        if result.warnings:
            logger.info("Export finished with %d warning(s)", len(result.warnings))
        return result

    def render_session(self, session: SessionFile) -> RenderedSession:
        """Load, assemble, classify and render one session in memory."""
        if self._previews is None:
            self._load_history([])

        loaded = self.provider.load_records(session.path)
        warnings = list(loaded.warnings)

        thread = assemble_thread(
            session.session_id,
            loaded.records,
            include_thinking=self.options.include_thinking,
        )
        project_path = self._project_path(session, thread, warnings)

        preview = session.preview or self._previews.get(session.session_id, "")
        tags = build_tag_set(classification_text(thread, preview), self.options.custom_tags)

        markdown = session_to_markdown(
            thread,
            tags,
            project_path,
            include_tool_output=self.options.include_tool_output,
        )
        return RenderedSession(
            session=session,
            thread=thread,
            tags=tags,
            project_path=project_path,
            markdown=markdown,
            warnings=warnings,
        )

    # ── Private helpers ──────────────────────────────────────────────

    def _prepare_output_dir(self) -> Path:
        output_dir = Path(self.options.output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(output_dir, e.strerror or str(e)) from e
        if not os.access(output_dir, os.W_OK):
            raise OutputDirectoryError(output_dir, "permission denied")
        return output_dir

    def _load_history(self, warnings: list[ExportWarning]) -> None:
        history = self.provider.read_history(warnings=warnings)
        self._previews = session_previews(history)
        self._projects = session_projects(history)
        self._known_paths = set(self._projects.values())

    def _project_path(
        self,
        session: SessionFile,
        thread: ConversationThread,
        warnings: list[ExportWarning],
    ) -> str:
        """Pick the project path, preferring sources that are not lossy."""
        recorded = self._projects.get(session.session_id)
        if recorded:
            return recorded
        if thread.cwd and encode_project_path(thread.cwd) == session.project_id:
            return thread.cwd

        decoded = self._decoded.get(session.project_id)
        if decoded is None:
            decoded = decode_project_name(session.project_id, self._known_paths)
            self._decoded[session.project_id] = decoded
        if decoded.resolved:
            return decoded.path

        if decoded.ambiguous:
            warnings.append(ExportWarning(
                kind="ambiguous-path",
                source=decoded.encoded,
                message=f"project name matches {len(decoded.candidates)} paths: {', '.join(decoded.candidates)}",
                hint="showing the undecoded name; pick the right path manually",
            ))
        else:
            warnings.append(ExportWarning(
                kind="unresolved-path",
                source=decoded.encoded,
                message=f"decoded project path {decoded.naive} does not exist",
            ))
        return decoded.naive

    def _filename(self, rendered: RenderedSession, used: set[str]) -> str:
        started = rendered.thread.started or rendered.session.modified
        date = started.strftime("%Y-%m-%d") if started else "undated"
        slug = project_slug(rendered.project_path)
        session_id = rendered.session.session_id
        name = f"{date}_{slug}_{session_id[:8]}.md"
        if name in used:
            name = f"{date}_{slug}_{session_id}.md"
        used.add(name)
        return name


def write_atomic(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` so that no partial file is ever visible."""
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
