"""Main screen: agent sidebar, conversation, activity line and input."""

from __future__ import annotations

import logging

from rich.markup import escape
from textual import work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Header, Input, Static, Tree

from aitherflow.adapters.conductor import Conductor
from aitherflow.adapters.subscription import Subscription
from aitherflow.engine.errors import ConductorError
from aitherflow.shared.commands import ParsedCommand, help_text, parse_command
from aitherflow.shared.services.preferences import UserPreferences
from aitherflow.tui.widgets.agent_sidebar import AgentSidebar
from aitherflow.tui.widgets.conversation import ConversationView
from aitherflow.tui.widgets.status_bar import StatusBar
from aitherflow.tui.widgets.thinking import ThinkingIndicator

logger = logging.getLogger(__name__)

# Store changes arrive per streamed chunk; coalesce redraws
_REFRESH_DELAY = 0.05


class MainScreen(Screen):
    """Primary workspace. All actions go through the conductor."""

    DEFAULT_CSS = """
    #main-pane {
        width: 1fr;
    }
    #error-line {
        height: auto;
        padding: 0 1;
        color: $error;
        display: none;
    }
    #error-line.-visible {
        display: block;
    }
    #prompt-input {
        dock: bottom;
        margin-bottom: 1;
    }
    """

    def __init__(
        self,
        conductor: Conductor,
        preferences: UserPreferences | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.conductor = conductor
        self.preferences = preferences or UserPreferences()
        self._subscriptions: list[Subscription] = []
        self._refresh_scheduled = False
        self._sidebar_dirty = True
        self._close_armed_for: str | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="workspace"):
            yield AgentSidebar(id="agent-sidebar")
            with Vertical(id="main-pane"):
                yield ConversationView(
                    show_tool_details=self.preferences.show_tool_details,
                    id="conversation",
                )
                yield Static("", id="error-line", markup=True)
                yield ThinkingIndicator(id="thinking")
        yield Input(placeholder="Message Claude or /help…", id="prompt-input")
        yield StatusBar(id="status-bar")

    def on_mount(self) -> None:
        self.query_one(AgentSidebar).styles.width = self.preferences.sidebar_width
        self._subscriptions = [
            self.conductor.store.subscribe(self._on_state_changed),
            self.conductor.ui.subscribe(self._on_state_changed),
        ]
        self._schedule_refresh()
        self.query_one("#prompt-input", Input).focus()

    def on_unmount(self) -> None:
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions = []

    # ── observing state ─────────────────────────────────────────────

    def _on_state_changed(self, kind: str, target_id: str | None) -> None:
        if kind in ("agents", "chats", "focus", "ui"):
            self._sidebar_dirty = True
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        if self._refresh_scheduled:
            return
        self._refresh_scheduled = True
        self.set_timer(_REFRESH_DELAY, self._refresh_view)

    async def _refresh_view(self) -> None:
        self._refresh_scheduled = False
        store = self.conductor.store
        ui = self.conductor.ui

        if self._sidebar_dirty:
            self._sidebar_dirty = False
            agents = store.agents
            self.query_one(AgentSidebar).populate(
                agents,
                {a.id: store.chats_for(a.id) for a in agents},
                active_agent_id=store.active_agent_id,
                active_chat_by_agent={a.id: store.active_chat_for(a.id) for a in agents},
                busy_agents=ui.busy_agents,
            )

        await self.query_one(ConversationView).show(
            store.rendered_chat_id, store.get_rendered_messages(),
        )
        self.query_one(ThinkingIndicator).set_activity(ui.thinking, ui.current_tool)

        error_line = self.query_one("#error-line", Static)
        error_line.update(f"⚠ {escape(ui.error)}" if ui.error else "")
        error_line.set_class(bool(ui.error), "-visible")

        self._refresh_status_bar()

    def _refresh_status_bar(self) -> None:
        store = self.conductor.store
        ui = self.conductor.ui
        bar = self.query_one(StatusBar)
        agent_id = store.active_agent_id
        agent = store.get_agent(agent_id) if agent_id else None
        if agent is None:
            bar.agent_name = "No agent"
            return
        usage = ui.usage_for(agent.id)
        bar.agent_name = agent.name
        bar.model = ui.model_for(agent.id) or self.conductor.config.model or "—"
        bar.tokens_used = usage.input_tokens + usage.output_tokens
        bar.cost_usd = usage.cost_usd
        if ui.error:
            bar.status = "error"
        elif ui.is_busy(agent.id):
            bar.status = "streaming"
        elif self.conductor.registry.is_alive(agent.id):
            bar.status = "connected"
        else:
            bar.status = "idle"

    # ── sidebar ─────────────────────────────────────────────────────

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        ref = event.node.data
        if ref is None:
            return
        kind, ref_id = ref
        if kind == "agent":
            if self.conductor.store.active_agent_id == ref_id:
                self.conductor.toggle_expanded(ref_id)
            else:
                self.conductor.switch_agent(ref_id)
        elif kind == "chat":
            chat = self.conductor.store.get_chat(ref_id)
            if chat is not None:
                self.conductor.switch_agent(chat.agent_id)
                self.conductor.switch_chat(ref_id)

    # ── input ───────────────────────────────────────────────────────

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value
        event.input.value = ""
        if not text.strip():
            return
        command = parse_command(text)
        if command is not None:
            self.handle_command(command)
            return
        self._send(text)

    def handle_command(self, command: ParsedCommand) -> None:
        name = command.name
        if name == "new":
            self.new_chat()
        elif name == "open":
            if not command.arg_text:
                self.notify("Usage: /open PATH", severity="warning")
                return
            self._open_project(command.arg_text)
        elif name == "projects":
            self._projects(command.args)
        elif name == "close":
            self.close_agent()
        elif name == "stop":
            self.stop()
        elif name == "clear":
            self.clear_chat()
        elif name == "help":
            self.notify(help_text(), title="Commands", timeout=10)
        else:
            self.notify(f"Unknown command: /{name}", severity="warning")

    def new_chat(self) -> None:
        self.conductor.new_chat()

    def _projects(self, args: list[str]) -> None:
        bookmarks = self.conductor.bookmarks
        if args:
            try:
                bookmark = bookmarks[int(args[0]) - 1]
            except (ValueError, IndexError):
                self.notify(f"No project #{args[0]}", severity="warning")
                return
            self.conductor.open_project(bookmark.id)
            return
        lines = [
            f"{i}. {escape(b.name)}  [dim]{escape(b.path)}[/dim]"
            for i, b in enumerate(bookmarks, start=1)
        ]
        self.notify("\n".join(lines) or "No projects", title="Projects", timeout=10)

    # ── workers ─────────────────────────────────────────────────────

    @work(name="send")
    async def _send(self, text: str) -> None:
        await self.conductor.send(text)

    @work(name="stop")
    async def stop(self) -> None:
        await self.conductor.stop()

    @work(name="clear-chat")
    async def clear_chat(self) -> None:
        await self.conductor.clear_chat()

    @work(name="open-project")
    async def _open_project(self, path: str) -> None:
        try:
            await self.conductor.add_project(path)
        except (ConductorError, OSError) as exc:
            self.notify(f"Could not open {path}: {exc}", severity="error")

    @work(name="close-agent")
    async def close_agent(self) -> None:
        agent_id = self.conductor.store.active_agent_id
        if agent_id is None:
            return
        live = self.conductor.host.has_active_session(agent_id)
        if live and self.preferences.confirm_close_agent and self._close_armed_for != agent_id:
            self._close_armed_for = agent_id
            self.notify("Session is running. Close again to stop it and close the agent.")
            return
        self._close_armed_for = None
        if not await self.conductor.close_agent(agent_id):
            self.notify("The last agent cannot be closed", severity="warning")
