"""Event router: demultiplexes the tagged CLI event stream into chats.

Every event carries the id of the agent whose CLI produced it. The
router resolves that agent's active chat, applies the per-event message
list transition to that chat, and updates the ephemeral UI flags only
when the chat is the one currently on screen.

Events are handled strictly one at a time; each ``handle()`` call runs
to completion without yielding to the event loop.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable

from aitherflow.adapters.conversation_store import ConversationStore
from aitherflow.adapters.event_bus import EventBus
from aitherflow.adapters.events import (
    CliEvent,
    ErrorEvent,
    MessageComplete,
    ModelInfo,
    ProcessExited,
    SessionId,
    StreamChunk,
    ToolResult,
    ToolUse,
    TurnComplete,
    UsageInfo,
)
from aitherflow.adapters.session_registry import SessionRegistry
from aitherflow.adapters.subscription import Subscription
from aitherflow.adapters.ui_state import AgentUsage, UiState
from aitherflow.shared.models.message import ToolActivity

logger = logging.getLogger(__name__)

DEFAULT_TOOL_CLEAR_DELAY = 1.5
DEFAULT_EVENT_LOG_SIZE = 200


class ToolClearTimer:
    """Single-shot delayed clear of the tool activity banner.

    Armed for one tool invocation id at a time; re-arming or cancelling
    drops the previous schedule.
    """

    def __init__(self, delay: float) -> None:
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._tool_use_id: str | None = None

    @property
    def tool_use_id(self) -> str | None:
        return self._tool_use_id

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, tool_use_id: str, on_fire: Callable[[str], None]) -> None:
        self.cancel()
        self._tool_use_id = tool_use_id
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire, on_fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._tool_use_id = None

    def _fire(self, on_fire: Callable[[str], None]) -> None:
        tool_use_id = self._tool_use_id
        self._handle = None
        self._tool_use_id = None
        if tool_use_id is not None:
            on_fire(tool_use_id)


class EventRouter:
    """Applies CLI events to the conversation store and UI state."""

    def __init__(
        self,
        store: ConversationStore,
        registry: SessionRegistry,
        ui: UiState,
        *,
        tool_clear_delay: float = DEFAULT_TOOL_CLEAR_DELAY,
        event_log_size: int = DEFAULT_EVENT_LOG_SIZE,
    ) -> None:
        self._store = store
        self._registry = registry
        self._ui = ui
        self._tool_timer = ToolClearTimer(tool_clear_delay)
        self._recent_events: deque[CliEvent] = deque(maxlen=event_log_size)

    @property
    def tool_timer(self) -> ToolClearTimer:
        return self._tool_timer

    @property
    def recent_events(self) -> list[CliEvent]:
        return list(self._recent_events)

    def attach(self, bus: EventBus) -> Subscription:
        """Start consuming *bus*; dispose the handle to stop."""
        return bus.subscribe(self.handle)

    def close(self) -> None:
        self._tool_timer.cancel()

    # ── dispatch ────────────────────────────────────────────────────

    def handle(self, event: CliEvent) -> None:
        self._recent_events.append(event)

        chat_id = self._store.active_chat_for(event.agent_id)
        if chat_id is None:
            logger.debug(
                "Dropping %s for agent %s: no active chat",
                event.event_type,
                event.agent_id[:8],
            )
            return
        focused = self._store.is_rendered(chat_id)

        if isinstance(event, SessionId):
            self._registry.mark_alive(event.agent_id)
        elif isinstance(event, StreamChunk):
            self._handle_stream_chunk(event, chat_id, focused)
        elif isinstance(event, MessageComplete):
            self._store.apply_message_complete(chat_id, event.text)
        elif isinstance(event, ToolUse):
            self._handle_tool_use(event, chat_id, focused)
        elif isinstance(event, ToolResult):
            self._handle_tool_result(event, chat_id, focused)
        elif isinstance(event, TurnComplete):
            self._handle_turn_end(event.agent_id, chat_id, focused)
        elif isinstance(event, ProcessExited):
            logger.info(
                "CLI for agent %s exited (code=%s)",
                event.agent_id[:8],
                event.exit_code,
            )
            self._registry.mark_dead(event.agent_id)
            self._handle_turn_end(event.agent_id, chat_id, focused)
        elif isinstance(event, ErrorEvent):
            self._handle_error(event, chat_id, focused)
        elif isinstance(event, ModelInfo):
            self._ui.set_model(event.agent_id, event.model)
        elif isinstance(event, UsageInfo):
            self._ui.set_usage(
                event.agent_id,
                AgentUsage(
                    input_tokens=event.input_tokens,
                    output_tokens=event.output_tokens,
                    cost_usd=event.cost_usd,
                ),
            )
        else:
            logger.debug("Ignoring unknown event type %r", event.event_type)

    # ── individual event handlers ───────────────────────────────────

    def _handle_stream_chunk(self, event: StreamChunk, chat_id: str, focused: bool) -> None:
        self._store.apply_stream_chunk(chat_id, event.text)
        self._ui.mark_busy(event.agent_id)
        if focused:
            self._ui.set_thinking(True)

    def _handle_tool_use(self, event: ToolUse, chat_id: str, focused: bool) -> None:
        activity = ToolActivity(
            tool_use_id=event.tool_use_id,
            tool_name=event.tool_name,
            tool_input=dict(event.tool_input or {}),
        )
        self._store.open_tool_activity(chat_id, activity)
        self._ui.mark_busy(event.agent_id)
        if focused:
            self._tool_timer.cancel()
            self._ui.set_current_tool(activity)

    def _handle_tool_result(self, event: ToolResult, chat_id: str, focused: bool) -> None:
        closed = self._store.close_tool_activity(
            chat_id, event.tool_use_id, event.output_preview, event.is_error,
        )
        if closed is None:
            logger.debug(
                "toolResult %s has no matching open tool", event.tool_use_id,
            )
        if focused:
            # Keep the banner up briefly so back-to-back tools don't flicker.
            self._tool_timer.arm(event.tool_use_id, self._clear_tool_if_current)

    def _clear_tool_if_current(self, tool_use_id: str) -> None:
        current = self._ui.current_tool
        if current is not None and current.tool_use_id == tool_use_id:
            self._ui.set_current_tool(None)

    def _handle_turn_end(self, agent_id: str, chat_id: str, focused: bool) -> None:
        self._store.finalize_streaming_tail(chat_id)
        self._ui.mark_busy(agent_id, False)
        if focused:
            self._tool_timer.cancel()
            self._ui.clear_activity()

    def _handle_error(self, event: ErrorEvent, chat_id: str, focused: bool) -> None:
        logger.warning("CLI error for agent %s: %s", event.agent_id[:8], event.message)
        self._ui.mark_busy(event.agent_id, False)
        if focused:
            self._ui.set_error(event.message)
            self._ui.set_thinking(False)
        else:
            self._store.set_pending_error(chat_id, event.message)
