from __future__ import annotations

from types import SimpleNamespace

import pytest

from aitherflow.adapters.conversation_store import ConversationStore
from aitherflow.adapters.event_router import EventRouter
from aitherflow.adapters.focus import FocusTracker
from aitherflow.adapters.session_registry import SessionRegistry
from aitherflow.adapters.ui_state import UiState


class FakeSessionHost:
    """Records commands; optionally fails them with a preset exception."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None
        self.active: set[str] = set()

    async def start_session(self, agent_id, prompt, project_path=None, model=None):
        self.calls.append(("start", agent_id, prompt, project_path, model))
        if self.fail_with is not None:
            raise self.fail_with
        self.active.add(agent_id)

    async def send_message(self, agent_id, prompt):
        self.calls.append(("send", agent_id, prompt))
        if self.fail_with is not None:
            raise self.fail_with

    async def stop_session(self, agent_id):
        self.calls.append(("stop", agent_id))
        if self.fail_with is not None:
            raise self.fail_with
        self.active.discard(agent_id)

    def has_active_session(self, agent_id):
        return agent_id in self.active

    async def kill_all(self):
        self.calls.append(("kill_all",))
        self.active.clear()


@pytest.fixture
def core():
    registry = SessionRegistry()
    focus = FocusTracker()
    ui = UiState()
    store = ConversationStore(focus, ui)
    router = EventRouter(store, registry, ui, tool_clear_delay=0.05)
    return SimpleNamespace(
        registry=registry, focus=focus, ui=ui, store=store, router=router,
    )


@pytest.fixture
def fake_host():
    return FakeSessionHost()
