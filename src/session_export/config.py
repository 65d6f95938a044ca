"""Path resolution and export options."""

import os
from dataclasses import dataclass
from pathlib import Path


def get_claude_home() -> Path:
    """Return Claude Code's data directory (normally ~/.claude)."""
    env = os.environ.get("SESSION_EXPORT_CLAUDE_PATH")
    if env:
        return Path(env)

    return Path.home() / ".claude"


def get_default_output_path() -> Path:
    """Return the default export directory."""
    env = os.environ.get("SESSION_EXPORT_OUTPUT")
    if env:
        return Path(env)

    return Path.cwd() / "claude-exports"


@dataclass
class ExportOptions:
    """User choices for one export run."""

    output_dir: Path
    include_tool_output: bool = False
    include_thinking: bool = False
    custom_tags: tuple[str, ...] = ()
