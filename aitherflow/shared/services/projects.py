"""Project bookmarks persisted in ``<config dir>/projects.json``.

The file is a JSON list of ``{"id", "name", "path", "addedAt"}``
objects (``addedAt`` in epoch milliseconds). The default workspace is
never written to it.
"""
from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from aitherflow.engine.errors import ProjectStoreError
from aitherflow.shared.services.durable_write import atomic_write_text
from aitherflow.shared.services.paths import config_dir

logger = logging.getLogger(__name__)

PROJECTS_FILE = "projects.json"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ProjectEntry:
    """A bookmarked project folder."""
    name: str
    path: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    added_at: int = field(default_factory=_now_ms)

    @classmethod
    def for_path(cls, path: str) -> ProjectEntry:
        """Bookmark *path*, named after its last component."""
        resolved = Path(path).expanduser().resolve()
        return cls(name=resolved.name or str(resolved), path=str(resolved))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ProjectEntry:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            path=str(data["path"]),
            added_at=int(data.get("addedAt", 0)),
        )


class ProjectStore:
    """Loads and saves the bookmark list."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or config_dir() / PROJECTS_FILE

    def load(self) -> list[ProjectEntry]:
        """Read bookmarks; a missing file is an empty list."""
        if not self.path.exists():
            logger.debug("No projects file at %s", self.path)
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ProjectStoreError(f"Failed to read {PROJECTS_FILE}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ProjectStoreError(f"Failed to parse {PROJECTS_FILE}: {exc}") from exc
        if not isinstance(data, list):
            raise ProjectStoreError(f"Failed to parse {PROJECTS_FILE}: expected a list")
        try:
            entries = [ProjectEntry.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise ProjectStoreError(f"Failed to parse {PROJECTS_FILE}: {exc}") from exc
        logger.info("Loaded %d project bookmark(s) from %s", len(entries), self.path)
        return entries

    def save(self, entries: list[ProjectEntry]) -> None:
        payload = json.dumps([e.to_dict() for e in entries], indent=2)
        try:
            atomic_write_text(self.path, payload + "\n")
        except OSError as exc:
            raise ProjectStoreError(f"Failed to write {PROJECTS_FILE}: {exc}") from exc
        logger.debug("Saved %d project bookmark(s) to %s", len(entries), self.path)
