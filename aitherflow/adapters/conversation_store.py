"""Conversation store: agents, chats and per-chat message history.

The store is the single owner of the agent/chat/message graph. Focus
changes go through it so that the focus mapping and the ephemeral UI
flags are updated in the same call as the graph mutation. It never
calls back into the event router; interested parties register with
``subscribe()`` instead.
"""
from __future__ import annotations

import logging

from aitherflow.adapters.focus import FocusTracker
from aitherflow.adapters.subscription import Observable
from aitherflow.adapters.ui_state import UiState
from aitherflow.engine.errors import AgentNotFoundError, ChatNotFoundError
from aitherflow.shared.models.agent import Agent, Chat, new_id
from aitherflow.shared.models.message import Message, MessageRole, ToolActivity

logger = logging.getLogger(__name__)


class ConversationStore(Observable):
    """Owns Agent/Chat/Message/ToolActivity state."""

    def __init__(
        self,
        focus: FocusTracker,
        ui: UiState,
    ) -> None:
        super().__init__()
        self._focus = focus
        self._ui = ui
        # Insertion order is the sidebar order.
        self._agents: dict[str, Agent] = {}
        self._chats: dict[str, Chat] = {}
        self._messages: dict[str, list[Message]] = {}

    # ── queries ─────────────────────────────────────────────────────

    @property
    def agents(self) -> list[Agent]:
        return list(self._agents.values())

    def get_agent(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def get_chat(self, chat_id: str) -> Chat | None:
        return self._chats.get(chat_id)

    def chats_for(self, agent_id: str) -> list[Chat]:
        return [c for c in self._chats.values() if c.agent_id == agent_id]

    def get_messages(self, chat_id: str) -> list[Message]:
        return list(self._messages.get(chat_id, []))

    def active_chat_for(self, agent_id: str) -> str | None:
        return self._focus.active_chat_for(agent_id)

    @property
    def active_agent_id(self) -> str | None:
        return self._focus.active_agent_id

    @property
    def rendered_chat_id(self) -> str | None:
        return self._focus.rendered_chat_id

    @property
    def rendered_chat(self) -> Chat | None:
        chat_id = self._focus.rendered_chat_id
        return self._chats.get(chat_id) if chat_id else None

    def get_rendered_messages(self) -> list[Message]:
        chat_id = self._focus.rendered_chat_id
        return self.get_messages(chat_id) if chat_id else []

    def is_rendered(self, chat_id: str) -> bool:
        return self._focus.is_rendered(chat_id)

    # ── agents ──────────────────────────────────────────────────────

    def create_agent(
        self,
        name: str,
        project_path: str,
        agent_id: str | None = None,
    ) -> str:
        """Create an agent with one default chat and focus it."""
        agent_id = agent_id or new_id()
        if agent_id in self._agents:
            raise ValueError(f"Agent already exists: {agent_id}")
        self._agents[agent_id] = Agent(
            id=agent_id, name=name, project_path=project_path,
        )
        chat = self._add_chat(agent_id)
        self._focus.bind(agent_id, chat.id)
        self._focus.focus(agent_id)
        self._ui.rehydrate(agent_id)
        logger.info(
            "Created agent %s (%s) at %s", name, agent_id[:8], project_path,
        )
        self._notify("agents", agent_id)
        return agent_id

    def close_agent(self, agent_id: str) -> bool:
        """Remove an agent with all its chats and messages.

        Returns False (and changes nothing) when *agent_id* is unknown or
        is the last remaining agent.
        """
        if agent_id not in self._agents:
            return False
        if len(self._agents) <= 1:
            logger.info("Refusing to close the last agent %s", agent_id[:8])
            return False

        del self._agents[agent_id]
        for chat in self.chats_for(agent_id):
            del self._chats[chat.id]
            self._messages.pop(chat.id, None)
        self._focus.unbind(agent_id)
        self._ui.forget_agent(agent_id)

        if self._focus.is_focused(agent_id):
            fallback = next(iter(self._agents))
            self._focus.focus(fallback)
            self._rehydrate_rendered(fallback)
        logger.info("Closed agent %s", agent_id[:8])
        self._notify("agents", agent_id)
        return True

    def switch_agent(self, agent_id: str) -> None:
        if self._focus.is_focused(agent_id):
            return
        if agent_id not in self._agents:
            raise AgentNotFoundError(agent_id)
        self._focus.focus(agent_id)
        self._rehydrate_rendered(agent_id)
        self._notify("focus", agent_id)

    def toggle_expanded(self, agent_id: str) -> None:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        agent.expanded = not agent.expanded
        self._notify("agents", agent_id)

    # ── chats ───────────────────────────────────────────────────────

    def create_chat(self, agent_id: str) -> str:
        if agent_id not in self._agents:
            raise AgentNotFoundError(agent_id)
        chat = self._add_chat(agent_id)
        self._rebind(agent_id, chat.id)
        if self._focus.is_focused(agent_id):
            self._rehydrate_rendered(agent_id)
        self._notify("chats", chat.id)
        return chat.id

    def switch_chat(self, chat_id: str) -> None:
        chat = self._chats.get(chat_id)
        if chat is None:
            logger.debug("switch_chat: unknown chat %s", chat_id)
            return
        self._rebind(chat.agent_id, chat_id)
        if self._focus.is_focused(chat.agent_id):
            self._rehydrate_rendered(chat.agent_id)
        self._notify("focus", chat_id)

    def clear_chat(self, chat_id: str) -> None:
        chat = self._require_chat(chat_id)
        self._messages[chat_id] = []
        chat.pending_error = None
        self._notify("messages", chat_id)

    def _add_chat(self, agent_id: str) -> Chat:
        chat = Chat(id=new_id(), agent_id=agent_id)
        self._chats[chat.id] = chat
        self._messages[chat.id] = []
        return chat

    def _rebind(self, agent_id: str, chat_id: str) -> None:
        """Point *agent_id*'s live output at *chat_id*.

        A reply still streaming into the previously bound chat stops there.
        """
        previous = self._focus.active_chat_for(agent_id)
        if previous is not None and previous != chat_id and self._end_streaming(previous):
            self._notify("messages", previous)
        self._focus.bind(agent_id, chat_id)

    def _require_chat(self, chat_id: str) -> Chat:
        chat = self._chats.get(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        return chat

    def _rehydrate_rendered(self, agent_id: str) -> None:
        """Reset ephemeral flags for the newly rendered chat of *agent_id*.

        A buffered background error moves onto the screen.
        """
        chat = self.rendered_chat
        error = None
        if chat is not None:
            error, chat.pending_error = chat.pending_error, None
        self._ui.rehydrate(agent_id, error)

    # ── messages ────────────────────────────────────────────────────

    def append_user_message(self, chat_id: str, text: str) -> Message:
        self._require_chat(chat_id)
        # A user message closes any reply still streaming above it
        self._end_streaming(chat_id)
        msg = Message(role=MessageRole.USER, text=text)
        self._messages[chat_id].append(msg)
        self._notify("messages", chat_id)
        return msg

    def _tail(self, chat_id: str) -> Message | None:
        msgs = self._messages.get(chat_id)
        return msgs[-1] if msgs else None

    def apply_stream_chunk(self, chat_id: str, text: str) -> Message:
        """Replace the streaming tail's text, or start a streaming reply."""
        self._require_chat(chat_id)
        tail = self._tail(chat_id)
        if tail is not None and tail.is_streaming_assistant:
            tail.text = text
        else:
            self._end_streaming(chat_id)
            tail = Message(role=MessageRole.ASSISTANT, text=text, streaming=True)
            self._messages[chat_id].append(tail)
        self._notify("messages", chat_id)
        return tail

    def apply_message_complete(self, chat_id: str, text: str) -> Message:
        """Finalize the streaming tail with *text*, or append a final reply."""
        self._require_chat(chat_id)
        tail = self._tail(chat_id)
        if tail is not None and tail.is_streaming_assistant:
            tail.text = text
            tail.streaming = False
        else:
            self._end_streaming(chat_id)
            tail = Message(role=MessageRole.ASSISTANT, text=text)
            self._messages[chat_id].append(tail)
        self._notify("messages", chat_id)
        return tail

    def open_tool_activity(self, chat_id: str, activity: ToolActivity) -> bool:
        """Attach *activity* to the tail assistant message, if there is one."""
        self._require_chat(chat_id)
        tail = self._tail(chat_id)
        if tail is None or tail.role != MessageRole.ASSISTANT:
            return False
        tail.tools.append(activity)
        self._notify("messages", chat_id)
        return True

    def close_tool_activity(
        self,
        chat_id: str,
        tool_use_id: str,
        output: str,
        is_error: bool,
    ) -> ToolActivity | None:
        """Close the matching tool entry on the tail message; None if no match."""
        self._require_chat(chat_id)
        tail = self._tail(chat_id)
        if tail is None or tail.role != MessageRole.ASSISTANT:
            return None
        activity = tail.find_tool(tool_use_id)
        if activity is None:
            return None
        activity.close(output, is_error)
        self._notify("messages", chat_id)
        return activity

    def finalize_streaming_tail(self, chat_id: str) -> bool:
        """Mark a streaming tail as complete without touching its text."""
        self._require_chat(chat_id)
        tail = self._tail(chat_id)
        if tail is None or not tail.is_streaming_assistant:
            return False
        tail.streaming = False
        self._notify("messages", chat_id)
        return True

    def _end_streaming(self, chat_id: str) -> bool:
        """Clear the streaming flag on every message of *chat_id*."""
        changed = False
        for msg in self._messages.get(chat_id, []):
            if msg.streaming:
                msg.streaming = False
                changed = True
        return changed

    def set_pending_error(self, chat_id: str, message: str) -> None:
        chat = self._require_chat(chat_id)
        chat.pending_error = message
        self._notify("chats", chat_id)
