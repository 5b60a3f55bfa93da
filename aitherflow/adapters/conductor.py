"""Conductor: wires the orchestration components and owns their lifetime.

The conductor constructs the state containers once, hands each component
its collaborators explicitly, and exposes the user-level operations
(projects, agents, chats, send/stop) to the presentation layer.

Lifecycle:
    conductor = Conductor(config)
    await conductor.start()      # workspace agent + router subscription
    ...
    await conductor.shutdown()   # dispose subscription, kill CLIs
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from aitherflow.adapters.conversation_store import ConversationStore
from aitherflow.adapters.dispatcher import CommandDispatcher, SessionHost
from aitherflow.adapters.event_bus import EventBus
from aitherflow.adapters.event_router import EventRouter
from aitherflow.adapters.focus import FocusTracker
from aitherflow.adapters.session_registry import SessionRegistry
from aitherflow.adapters.subscription import Subscription
from aitherflow.adapters.ui_state import UiState
from aitherflow.engine.config import HostConfig
from aitherflow.engine.errors import AgentNotFoundError, ProjectStoreError
from aitherflow.engine.session_host import ClaudeSessionHost
from aitherflow.shared.services.paths import config_dir
from aitherflow.shared.services.projects import ProjectEntry, ProjectStore
from aitherflow.shared.services.workspace import WORKSPACE_DIR_NAME, ensure_default_workspace

logger = logging.getLogger(__name__)

WORKSPACE_AGENT_ID = "workspace"


@dataclass
class ProjectBookmark:
    """An entry in the project picker. The id doubles as the agent id."""
    id: str
    name: str
    path: str
    added_at: int = 0

    @property
    def is_workspace(self) -> bool:
        return self.id == WORKSPACE_AGENT_ID


class Conductor:
    """Top-level object owning every orchestration component."""

    def __init__(
        self,
        config: HostConfig | None = None,
        *,
        host: SessionHost | None = None,
        project_store: ProjectStore | None = None,
        config_root: Path | None = None,
    ) -> None:
        self.config = config or HostConfig()
        self._config_root = config_root

        self.bus = EventBus(maxsize=self.config.event_queue_size)
        self.registry = SessionRegistry()
        self.focus = FocusTracker()
        self.ui = UiState()
        self.store = ConversationStore(self.focus, self.ui)
        self.router = EventRouter(
            self.store,
            self.registry,
            self.ui,
            tool_clear_delay=self.config.tool_clear_delay,
            event_log_size=self.config.event_log_size,
        )
        self.host: SessionHost = host or ClaudeSessionHost(self.bus.emit, self.config)
        self.dispatcher = CommandDispatcher(
            self.store, self.registry, self.ui, self.host, model=self.config.model,
        )
        self.projects = project_store or ProjectStore(
            (config_root or config_dir()) / "projects.json"
        )

        self.bookmarks: list[ProjectBookmark] = []
        self._router_subscription: Subscription | None = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Provision the workspace, load bookmarks and begin routing."""
        if self._started:
            return
        workspace_path = await self._ensure_workspace()
        saved = await self._load_saved_projects()

        self.bookmarks = [
            ProjectBookmark(
                id=WORKSPACE_AGENT_ID, name=WORKSPACE_AGENT_ID, path=workspace_path,
            ),
            *(
                ProjectBookmark(id=p.id, name=p.name, path=p.path, added_at=p.added_at)
                for p in saved
                if p.id != WORKSPACE_AGENT_ID
            ),
        ]
        # Only the workspace agent is open on start; saved projects stay bookmarks
        self.store.create_agent(
            WORKSPACE_AGENT_ID, workspace_path, agent_id=WORKSPACE_AGENT_ID,
        )
        self._router_subscription = self.router.attach(self.bus)
        self._started = True
        logger.info(
            "Conductor started (workspace=%s, %d saved project(s))",
            workspace_path, len(saved),
        )

    async def shutdown(self) -> None:
        if self._router_subscription is not None:
            self._router_subscription.dispose()
            self._router_subscription = None
        self.router.close()
        await self.host.kill_all()
        self.bus.close()
        self._started = False
        logger.info("Conductor shut down")

    async def __aenter__(self) -> Conductor:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()

    async def _ensure_workspace(self) -> str:
        try:
            path = await asyncio.to_thread(ensure_default_workspace, self._config_root)
        except OSError:
            fallback = (self._config_root or config_dir()) / WORKSPACE_DIR_NAME
            logger.exception("Could not create the default workspace; using %s", fallback)
            return str(fallback)
        return str(path)

    async def _load_saved_projects(self) -> list[ProjectEntry]:
        try:
            return await asyncio.to_thread(self.projects.load)
        except ProjectStoreError:
            logger.exception("Could not load saved projects")
            return []

    # ── projects and agents ─────────────────────────────────────────

    def get_bookmark(self, bookmark_id: str) -> ProjectBookmark | None:
        for bookmark in self.bookmarks:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    async def add_project(self, folder_path: str) -> str:
        """Bookmark *folder_path* and open an agent for it.

        A folder that is already bookmarked is opened instead. Returns
        the agent id.
        """
        entry = ProjectEntry.for_path(folder_path)
        for bookmark in self.bookmarks:
            if bookmark.path == entry.path:
                self.open_project(bookmark.id)
                return bookmark.id

        self.bookmarks.append(ProjectBookmark(
            id=entry.id, name=entry.name, path=entry.path, added_at=entry.added_at,
        ))
        self.store.create_agent(entry.name, entry.path, agent_id=entry.id)
        await self._save_bookmarks()
        return entry.id

    def open_project(self, bookmark_id: str) -> str:
        """Focus the bookmark's agent, reopening it with a fresh chat if closed."""
        if self.store.get_agent(bookmark_id) is not None:
            self.store.switch_agent(bookmark_id)
            return bookmark_id
        bookmark = self.get_bookmark(bookmark_id)
        if bookmark is None:
            raise AgentNotFoundError(bookmark_id)
        return self.store.create_agent(bookmark.name, bookmark.path, agent_id=bookmark.id)

    async def close_agent(self, agent_id: str) -> bool:
        """Close an agent card. Its bookmark is kept."""
        if self.store.get_agent(agent_id) is None or len(self.store.agents) <= 1:
            return self.store.close_agent(agent_id)
        if self.registry.is_alive(agent_id) or self.host.has_active_session(agent_id):
            await self.dispatcher.stop(agent_id)
        return self.store.close_agent(agent_id)

    def switch_agent(self, agent_id: str) -> None:
        self.store.switch_agent(agent_id)

    def toggle_expanded(self, agent_id: str) -> None:
        self.store.toggle_expanded(agent_id)

    async def _save_bookmarks(self) -> None:
        entries = [
            ProjectEntry(id=b.id, name=b.name, path=b.path, added_at=b.added_at)
            for b in self.bookmarks
            if not b.is_workspace
        ]
        try:
            await asyncio.to_thread(self.projects.save, entries)
        except ProjectStoreError:
            logger.exception("Could not save project bookmarks")

    # ── chats ───────────────────────────────────────────────────────

    def new_chat(self, agent_id: str | None = None) -> str | None:
        agent_id = agent_id or self.store.active_agent_id
        if agent_id is None:
            return None
        return self.store.create_chat(agent_id)

    def switch_chat(self, chat_id: str) -> None:
        self.store.switch_chat(chat_id)

    async def send(self, text: str) -> bool:
        """Send *text* into the chat on screen."""
        chat_id = self.store.rendered_chat_id
        if chat_id is None:
            logger.debug("send: no chat on screen")
            return False
        return await self.dispatcher.send(chat_id, text)

    async def stop(self) -> bool:
        """Stop the focused agent's CLI session."""
        agent_id = self.store.active_agent_id
        if agent_id is None:
            return False
        return await self.dispatcher.stop(agent_id)

    async def clear_chat(self) -> None:
        chat_id = self.store.rendered_chat_id
        if chat_id is not None:
            await self.dispatcher.clear_chat(chat_id)
