from __future__ import annotations

import pytest

from aitherflow.adapters.dispatcher import CommandDispatcher
from aitherflow.adapters.events import SessionId, StreamChunk, ToolUse, TurnComplete
from aitherflow.engine.errors import (
    AgentNotFoundError,
    ChatNotFoundError,
    CliNotFoundError,
    SessionNotFoundError,
    SessionWriteError,
)
from aitherflow.shared.models.message import MessageRole


def _dispatcher(core, host, model=None) -> CommandDispatcher:
    return CommandDispatcher(core.store, core.registry, core.ui, host, model=model)


@pytest.mark.asyncio
async def test_send_starts_session_with_project_path_and_model(core, fake_host) -> None:
    a = core.store.create_agent("a", "/proj/a")
    chat = core.store.rendered_chat_id

    ok = await _dispatcher(core, fake_host, model="sonnet").send(chat, "hi")

    assert ok is True
    assert fake_host.calls == [("start", a, "hi", "/proj/a", "sonnet")]
    assert core.store.get_messages(chat)[-1].text == "hi"


@pytest.mark.asyncio
async def test_text_is_kept_as_typed(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id
    typed = "  def f():\n      return 1\n"

    await _dispatcher(core, fake_host).send(chat, typed)

    assert core.store.get_messages(chat)[-1].text == typed
    assert fake_host.calls == [("start", a, typed, "/a", None)]


@pytest.mark.asyncio
async def test_blank_text_is_ignored(core, fake_host) -> None:
    core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id

    assert await _dispatcher(core, fake_host).send(chat, "   ") is False
    assert fake_host.calls == []
    assert core.store.get_messages(chat) == []


@pytest.mark.asyncio
async def test_send_to_unknown_chat_raises(core, fake_host) -> None:
    core.store.create_agent("a", "/a")
    with pytest.raises(ChatNotFoundError):
        await _dispatcher(core, fake_host).send("nope", "hi")


@pytest.mark.asyncio
async def test_start_failure_surfaces_error_and_clears_thinking(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id
    fake_host.fail_with = CliNotFoundError(a, "claude")

    ok = await _dispatcher(core, fake_host).send(chat, "hi")

    assert ok is False
    assert core.ui.thinking is False
    assert "Claude CLI not found" in core.ui.error
    assert not core.ui.is_busy(a)
    # Optimistic user message stays
    assert core.store.get_messages(chat)[-1].text == "hi"


@pytest.mark.asyncio
async def test_failure_for_background_chat_is_buffered(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    a_chat = core.store.rendered_chat_id
    core.store.create_agent("b", "/b")
    fake_host.fail_with = SessionWriteError(a, "broken pipe")

    await _dispatcher(core, fake_host).send(a_chat, "hi")

    assert core.ui.error is None
    assert core.store.get_chat(a_chat).pending_error == "Failed to send message: broken pipe"


@pytest.mark.asyncio
async def test_live_session_gets_follow_up(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id
    core.router.handle(SessionId(agent_id=a, session_id="s"))

    await _dispatcher(core, fake_host).send(chat, "more")

    assert fake_host.calls == [("send", a, "more")]


@pytest.mark.asyncio
async def test_send_clears_previous_error(core, fake_host) -> None:
    core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id
    core.ui.set_error("old problem")

    await _dispatcher(core, fake_host).send(chat, "retry")

    assert core.ui.error is None
    assert core.ui.thinking is True


@pytest.mark.asyncio
async def test_stop_clears_activity_and_marks_dead(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    core.router.handle(SessionId(agent_id=a, session_id="s"))
    core.router.handle(StreamChunk(agent_id=a, text="x"))
    core.router.handle(ToolUse(agent_id=a, tool_use_id="t1", tool_name="Bash"))
    assert core.ui.thinking and core.ui.current_tool is not None

    ok = await _dispatcher(core, fake_host).stop(a)

    assert ok is True
    assert fake_host.calls == [("stop", a)]
    assert not core.registry.is_alive(a)
    assert core.ui.thinking is False
    assert core.ui.current_tool is None
    assert not core.ui.is_busy(a)


@pytest.mark.asyncio
async def test_stop_failure_still_clears_activity(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    core.router.handle(StreamChunk(agent_id=a, text="x"))
    fake_host.fail_with = SessionNotFoundError(a)

    ok = await _dispatcher(core, fake_host).stop(a)

    assert ok is False
    assert core.ui.thinking is False
    assert core.ui.error == "No active session for this agent"


@pytest.mark.asyncio
async def test_stop_background_agent_keeps_focused_flags(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    core.router.handle(StreamChunk(agent_id=a, text="x"))
    b = core.store.create_agent("b", "/b")
    core.router.handle(StreamChunk(agent_id=b, text="y"))

    await _dispatcher(core, fake_host).stop(a)

    assert core.ui.thinking is True
    assert not core.ui.is_busy(a)
    assert core.ui.is_busy(b)


@pytest.mark.asyncio
async def test_clear_chat_stops_live_session_and_empties(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id
    dispatcher = _dispatcher(core, fake_host)
    await dispatcher.send(chat, "hi")
    core.router.handle(SessionId(agent_id=a, session_id="s"))
    core.router.handle(StreamChunk(agent_id=a, text="Hello"))

    await dispatcher.clear_chat(chat)

    assert core.store.get_messages(chat) == []
    assert ("stop", a) in fake_host.calls
    assert not core.registry.is_alive(a)

    await dispatcher.send(chat, "fresh")
    assert fake_host.calls[-1] == ("start", a, "fresh", "/a", None)


@pytest.mark.asyncio
async def test_chat_without_agent_raises_agent_not_found(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id
    del core.store._agents[a]

    with pytest.raises(AgentNotFoundError) as info:
        await _dispatcher(core, fake_host).send(chat, "hi")
    assert info.value.agent_id == a
    assert fake_host.calls == []


@pytest.mark.asyncio
async def test_follow_up_mid_stream_leaves_one_streaming_message(core, fake_host) -> None:
    a = core.store.create_agent("a", "/a")
    chat = core.store.rendered_chat_id
    dispatcher = _dispatcher(core, fake_host)
    await dispatcher.send(chat, "first")
    core.router.handle(SessionId(agent_id=a, session_id="s"))
    core.router.handle(StreamChunk(agent_id=a, text="partial"))

    await dispatcher.send(chat, "more")
    assert [m.text for m in core.store.get_messages(chat) if m.streaming] == []

    core.router.handle(StreamChunk(agent_id=a, text="x"))
    assert [m.text for m in core.store.get_messages(chat) if m.streaming] == ["x"]

    core.router.handle(TurnComplete(agent_id=a))
    messages = core.store.get_messages(chat)
    assert [m.text for m in messages if m.streaming] == []
    assert [(m.role, m.text) for m in messages] == [
        (MessageRole.USER, "first"),
        (MessageRole.ASSISTANT, "partial"),
        (MessageRole.USER, "more"),
        (MessageRole.ASSISTANT, "x"),
    ]
    assert fake_host.calls[-1] == ("send", a, "more")
