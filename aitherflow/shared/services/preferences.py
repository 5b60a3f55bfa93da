"""User preferences stored in ``<config dir>/preferences.json``.

Preferences are global (not per-project) since they describe how the
user likes the interface to behave.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from aitherflow.shared.services.durable_write import atomic_write_text
from aitherflow.shared.services.paths import config_dir

logger = logging.getLogger(__name__)

PREFERENCES_FILE = "preferences.json"


def default_preferences_path() -> Path:
    return config_dir() / PREFERENCES_FILE


@dataclass
class UserPreferences:
    """User preference settings.

    Attributes:
        show_tool_details: Show tool inputs and result previews under
            assistant messages instead of one summary line per tool.
        confirm_close_agent: Ask before closing an agent with a live
            CLI session.
        sidebar_width: Sidebar width in terminal columns (16-80).
    """

    show_tool_details: bool = False
    confirm_close_agent: bool = True
    sidebar_width: int = 28

    def validate(self) -> None:
        """Reset out-of-range values to their defaults."""
        if not isinstance(self.show_tool_details, bool):
            self.show_tool_details = False
        if not isinstance(self.confirm_close_agent, bool):
            self.confirm_close_agent = True
        if (
            isinstance(self.sidebar_width, bool)
            or not isinstance(self.sidebar_width, int)
            or not 16 <= self.sidebar_width <= 80
        ):
            self.sidebar_width = 28

    def save(self, path: Path | None = None) -> None:
        """Persist preferences to disk."""
        target = path or default_preferences_path()
        try:
            atomic_write_text(target, json.dumps(asdict(self), indent=2))
        except OSError:
            logger.warning("Failed to save preferences to %s", target, exc_info=True)

    @classmethod
    def load(cls, path: Path | None = None) -> UserPreferences:
        """Load preferences from disk, returning defaults if missing/corrupt."""
        target = path or default_preferences_path()
        if not target.exists():
            logger.debug("Preferences file not found at %s; using defaults", target)
            return cls()
        try:
            data = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Failed to load preferences from %s; using defaults", target)
            return cls()
        if not isinstance(data, dict):
            logger.warning("Preferences in %s are not an object; using defaults", target)
            return cls()
        prefs = cls(**{
            k: v for k, v in data.items()
            if k in cls.__dataclass_fields__
        })
        prefs.validate()
        logger.debug("Loaded preferences from %s", target)
        return prefs
