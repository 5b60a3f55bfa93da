from __future__ import annotations

import asyncio
import json

import pytest
import pytest_asyncio

from aitherflow.adapters.conductor import WORKSPACE_AGENT_ID, Conductor
from aitherflow.adapters.events import MessageComplete, SessionId, StreamChunk, TurnComplete
from aitherflow.engine.config import HostConfig
from aitherflow.engine.errors import AgentNotFoundError
from aitherflow.shared.models.message import MessageRole


@pytest_asyncio.fixture
async def conductor(tmp_path, fake_host):
    c = Conductor(HostConfig(tool_clear_delay=0.01), host=fake_host, config_root=tmp_path)
    await c.start()
    yield c
    await c.shutdown()


def _bookmark_file(tmp_path):
    return json.loads((tmp_path / "projects.json").read_text())


@pytest.mark.asyncio
async def test_start_opens_workspace_agent(conductor, tmp_path) -> None:
    assert conductor.started
    assert [a.id for a in conductor.store.agents] == [WORKSPACE_AGENT_ID]
    assert conductor.store.active_agent_id == WORKSPACE_AGENT_ID
    assert conductor.store.rendered_chat_id is not None
    assert (tmp_path / "workspace" / "CLAUDE.md").exists()
    assert conductor.bookmarks[0].is_workspace


@pytest.mark.asyncio
async def test_saved_projects_become_bookmarks_only(tmp_path, fake_host) -> None:
    (tmp_path / "projects.json").write_text(json.dumps([
        {"id": "p1", "name": "alpha", "path": str(tmp_path), "addedAt": 5},
    ]))
    async with Conductor(host=fake_host, config_root=tmp_path) as c:
        assert [b.id for b in c.bookmarks] == [WORKSPACE_AGENT_ID, "p1"]
        assert c.get_bookmark("p1").added_at == 5
        assert c.store.get_agent("p1") is None

        c.open_project("p1")
        assert c.store.active_agent_id == "p1"


@pytest.mark.asyncio
async def test_corrupt_projects_file_starts_with_workspace_only(tmp_path, fake_host) -> None:
    (tmp_path / "projects.json").write_text("garbage")
    async with Conductor(host=fake_host, config_root=tmp_path) as c:
        assert [b.id for b in c.bookmarks] == [WORKSPACE_AGENT_ID]


@pytest.mark.asyncio
async def test_add_project_saves_and_dedupes(conductor, tmp_path) -> None:
    folder = tmp_path / "proj"
    folder.mkdir()

    agent_id = await conductor.add_project(str(folder))

    assert conductor.store.active_agent_id == agent_id
    assert conductor.store.get_agent(agent_id).name == "proj"
    saved = _bookmark_file(tmp_path)
    assert [e["id"] for e in saved] == [agent_id]

    conductor.switch_agent(WORKSPACE_AGENT_ID)
    again = await conductor.add_project(str(folder) + "/")
    assert again == agent_id
    assert conductor.store.active_agent_id == agent_id
    assert len(_bookmark_file(tmp_path)) == 1


@pytest.mark.asyncio
async def test_closed_project_can_be_reopened(conductor, tmp_path) -> None:
    folder = tmp_path / "proj"
    folder.mkdir()
    agent_id = await conductor.add_project(str(folder))

    assert await conductor.close_agent(agent_id) is True
    assert conductor.store.get_agent(agent_id) is None
    assert conductor.get_bookmark(agent_id) is not None

    conductor.open_project(agent_id)
    assert conductor.store.active_agent_id == agent_id
    assert conductor.store.get_rendered_messages() == []


@pytest.mark.asyncio
async def test_open_unknown_project_raises(conductor) -> None:
    with pytest.raises(AgentNotFoundError):
        conductor.open_project("missing")


@pytest.mark.asyncio
async def test_last_agent_cannot_be_closed(conductor) -> None:
    assert await conductor.close_agent(WORKSPACE_AGENT_ID) is False
    assert conductor.store.get_agent(WORKSPACE_AGENT_ID) is not None


@pytest.mark.asyncio
async def test_close_agent_stops_live_session(conductor, fake_host, tmp_path) -> None:
    folder = tmp_path / "proj"
    folder.mkdir()
    agent_id = await conductor.add_project(str(folder))
    await conductor.send("hi")

    await conductor.close_agent(agent_id)

    assert ("stop", agent_id) in fake_host.calls
    assert conductor.store.active_agent_id == WORKSPACE_AGENT_ID


@pytest.mark.asyncio
async def test_send_and_events_flow_through_bus(conductor, fake_host) -> None:
    assert await conductor.send("hello") is True
    assert fake_host.calls[0][:3] == ("start", WORKSPACE_AGENT_ID, "hello")
    assert conductor.ui.thinking

    for event in (
        SessionId(agent_id=WORKSPACE_AGENT_ID, session_id="s1"),
        StreamChunk(agent_id=WORKSPACE_AGENT_ID, text="Hi"),
        MessageComplete(agent_id=WORKSPACE_AGENT_ID, text="Hi there"),
        TurnComplete(agent_id=WORKSPACE_AGENT_ID),
    ):
        await conductor.bus.emit(event)
    await asyncio.wait_for(conductor.bus.drain(), 5)

    messages = conductor.store.get_rendered_messages()
    assert [(m.role, m.text) for m in messages] == [
        (MessageRole.USER, "hello"),
        (MessageRole.ASSISTANT, "Hi there"),
    ]
    assert not conductor.ui.thinking
    assert conductor.registry.is_alive(WORKSPACE_AGENT_ID)

    await conductor.send("more")
    assert fake_host.calls[-1] == ("send", WORKSPACE_AGENT_ID, "more")


@pytest.mark.asyncio
async def test_new_chat_and_switch_back(conductor) -> None:
    first = conductor.store.rendered_chat_id
    second = conductor.new_chat()

    assert conductor.store.rendered_chat_id == second
    conductor.switch_chat(first)
    assert conductor.store.rendered_chat_id == first


@pytest.mark.asyncio
async def test_shutdown_kills_sessions(tmp_path, fake_host) -> None:
    c = Conductor(host=fake_host, config_root=tmp_path)
    await c.start()
    await c.shutdown()
    assert ("kill_all",) in fake_host.calls
    assert not c.started
