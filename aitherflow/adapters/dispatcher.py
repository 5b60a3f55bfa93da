"""Command dispatcher: user actions to session host commands.

Optimistic local updates happen before the host call; failures are
reconciled immediately into a chat-scoped error string.
"""
from __future__ import annotations

import logging
from typing import Protocol

from aitherflow.adapters.conversation_store import ConversationStore
from aitherflow.adapters.session_registry import SessionRegistry
from aitherflow.adapters.ui_state import UiState
from aitherflow.engine.errors import (
    AgentNotFoundError,
    ChatNotFoundError,
    SessionHostError,
)

logger = logging.getLogger(__name__)


class SessionHost(Protocol):
    """Commands the dispatcher issues against CLI sessions."""

    async def start_session(
        self,
        agent_id: str,
        prompt: str,
        project_path: str | None = None,
        model: str | None = None,
    ) -> None: ...

    async def send_message(self, agent_id: str, prompt: str) -> None: ...

    async def stop_session(self, agent_id: str) -> None: ...

    def has_active_session(self, agent_id: str) -> bool: ...

    async def kill_all(self) -> None: ...


class CommandDispatcher:
    """Issues start/send/stop against the session host."""

    def __init__(
        self,
        store: ConversationStore,
        registry: SessionRegistry,
        ui: UiState,
        host: SessionHost,
        *,
        model: str | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._ui = ui
        self._host = host
        self.model = model

    async def send(self, chat_id: str, text: str) -> bool:
        """Send *text* from the user into *chat_id*.

        Starts a CLI session when the owning agent has none, otherwise
        writes a follow-up. Returns False when the command failed.
        """
        if not text.strip():
            return False
        chat = self._store.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        agent = self._store.get_agent(chat.agent_id)
        if agent is None:
            raise AgentNotFoundError(chat.agent_id)

        self._store.append_user_message(chat_id, text)
        self._ui.mark_busy(agent.id)
        if self._store.is_rendered(chat_id):
            self._ui.clear_error()
            self._ui.set_thinking(True)

        try:
            if self._registry.is_alive(agent.id):
                await self._host.send_message(agent.id, text)
            else:
                logger.info(
                    "Starting CLI session for agent %s in %s",
                    agent.id[:8], agent.project_path,
                )
                await self._host.start_session(
                    agent.id,
                    text,
                    project_path=agent.project_path,
                    model=self.model,
                )
        except SessionHostError as exc:
            logger.warning("Send failed for agent %s: %s", agent.id[:8], exc)
            self._fail(agent.id, chat_id, str(exc))
            return False
        return True

    async def stop(self, agent_id: str) -> bool:
        """Stop *agent_id*'s CLI session. Activity is cleared either way."""
        ok = True
        try:
            await self._host.stop_session(agent_id)
            self._registry.mark_dead(agent_id)
        except SessionHostError as exc:
            ok = False
            logger.warning("Stop failed for agent %s: %s", agent_id[:8], exc)
            chat_id = self._store.active_chat_for(agent_id)
            if chat_id is not None:
                self._fail(agent_id, chat_id, str(exc))
        finally:
            self._ui.mark_busy(agent_id, False)
            if self._store.active_agent_id == agent_id:
                self._ui.clear_activity()
        return ok

    async def clear_chat(self, chat_id: str) -> None:
        """Stop the owning agent's session and empty *chat_id*.

        The next send starts a fresh CLI session with no prior context.
        """
        chat = self._store.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        if self._registry.is_alive(chat.agent_id) or self._host.has_active_session(chat.agent_id):
            await self.stop(chat.agent_id)
        self._store.clear_chat(chat_id)
        if self._store.is_rendered(chat_id):
            self._ui.clear_error()

    def _fail(self, agent_id: str, chat_id: str, message: str) -> None:
        self._ui.mark_busy(agent_id, False)
        if self._store.is_rendered(chat_id):
            self._ui.set_error(message)
            self._ui.set_thinking(False)
        else:
            self._store.set_pending_error(chat_id, message)
