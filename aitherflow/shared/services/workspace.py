"""The default workspace folder used by the built-in agent."""
from __future__ import annotations

import logging
from pathlib import Path

from aitherflow.shared.services.paths import config_dir

logger = logging.getLogger(__name__)

WORKSPACE_DIR_NAME = "workspace"

DEFAULT_CLAUDE_MD = """# Workspace

This is the default workspace for Aither Flow.
"""


def ensure_default_workspace(base_dir: Path | None = None) -> Path:
    """Create ``<config dir>/workspace`` with a starter CLAUDE.md.

    An existing CLAUDE.md is left untouched. Raises OSError when the
    folder cannot be created.
    """
    workspace = (base_dir or config_dir()) / WORKSPACE_DIR_NAME
    workspace.mkdir(parents=True, exist_ok=True)
    claude_md = workspace / "CLAUDE.md"
    if not claude_md.exists():
        claude_md.write_text(DEFAULT_CLAUDE_MD, encoding="utf-8")
        logger.info("Created default workspace at %s", workspace)
    return workspace
