"""Encoding rules for project directory names under ~/.claude/projects.

Claude Code names each project directory after its absolute path with every
separator replaced by ``-``:

    /home/u/reporting      -> -home-u-reporting
    /home/u/my-app         -> -home-u-my-app

The mapping is not injective (``my-app`` and ``my/app`` encode the same), so
decoding is checked against the live filesystem and may come back empty or
with several candidates.
"""

import logging
import os
import re
from pathlib import Path
from typing import Iterable, Iterator

from .core import DecodedPath

logger = logging.getLogger(__name__)

SUBSTITUTE = "-"
_SEPARATORS_RE = re.compile(r"[/\\:]")


def encode_project_path(path: str) -> str:
    """Encode an absolute path the way Claude Code names project directories."""
    return _SEPARATORS_RE.sub(SUBSTITUTE, str(path))


def naive_decode(name: str) -> str:
    """Replace every substitute character with a separator."""
    return name.replace(SUBSTITUTE, "/")


def decode_project_name(name: str, known_paths: Iterable[str] = ()) -> DecodedPath:
    """Decode an encoded directory name into the existing paths it may denote.

    ``known_paths`` are project paths seen elsewhere (e.g. the history index);
    those that encode to ``name`` and exist are accepted as candidates too.
    """
    candidates = set()
    if name.startswith(SUBSTITUTE):
        candidates.update(_walk(Path("/"), name[1:].split(SUBSTITUTE)))

    for path in known_paths:
        if encode_project_path(path) == name and os.path.exists(path):
            candidates.add(str(path))

    decoded = DecodedPath(encoded=name, naive=naive_decode(name), candidates=tuple(sorted(candidates)))
    if decoded.ambiguous:
        logger.debug("Ambiguous project name %s: %s", name, decoded.candidates)
    return decoded


def _walk(base: Path, tokens: list[str]) -> Iterator[str]:
    """Yield every existing path formed by splitting ``tokens`` into components."""
    for i in range(1, len(tokens) + 1):
        component = SUBSTITUTE.join(tokens[:i])
        if not component:
            continue
        candidate = base / component
        rest = tokens[i:]
        try:
            if rest:
                if candidate.is_dir():
                    yield from _walk(candidate, rest)
            elif candidate.exists():
                yield str(candidate)
        except OSError as e:
            logger.debug("Cannot inspect %s: %s", candidate, e)


def project_slug(path: str) -> str:
    """Short filesystem-safe name for a project, from its last path component."""
    name = os.path.basename(str(path).rstrip("/\\")) or "root"
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-")
    return slug or "project"
