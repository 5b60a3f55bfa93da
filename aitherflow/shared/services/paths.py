"""Per-user config and data directories.

Config: ``$AITHERFLOW_CONFIG_DIR`` or ``$XDG_CONFIG_HOME/aither-flow``
(default ``~/.config/aither-flow``). Data: ``$AITHERFLOW_DATA_DIR`` or
``$XDG_DATA_HOME/aither-flow`` (default ``~/.local/share/aither-flow``).
"""
from __future__ import annotations

import os
from pathlib import Path

APP_DIR_NAME = "aither-flow"


def _xdg_dir(override_env: str, xdg_env: str, fallback: Path) -> Path:
    override = os.getenv(override_env)
    if override:
        return Path(override).expanduser()
    xdg = os.getenv(xdg_env)
    base = Path(xdg).expanduser() if xdg else fallback
    return base / APP_DIR_NAME


def config_dir() -> Path:
    return _xdg_dir(
        "AITHERFLOW_CONFIG_DIR", "XDG_CONFIG_HOME", Path.home() / ".config",
    )


def data_dir() -> Path:
    return _xdg_dir(
        "AITHERFLOW_DATA_DIR", "XDG_DATA_HOME", Path.home() / ".local" / "share",
    )


def log_file_path() -> Path:
    return data_dir() / "logs" / "aitherflow.log"
