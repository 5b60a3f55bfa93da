"""Aither Flow TUI: Textual application class."""

from __future__ import annotations

import logging

from textual.app import App

from aitherflow.adapters.conductor import Conductor
from aitherflow.shared.services.preferences import UserPreferences
from aitherflow.tui.screens.main import MainScreen

logger = logging.getLogger(__name__)


class AitherFlowApp(App):
    """Terminal chat client for Claude CLI agents."""

    TITLE = "Aither Flow"
    SUB_TITLE = "Claude agents"

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+n", "new_chat", "New Chat"),
        ("escape", "stop", "Stop"),
        ("ctrl+l", "clear_chat", "Clear Chat"),
        ("ctrl+w", "close_agent", "Close Agent"),
    ]

    def __init__(
        self,
        conductor: Conductor,
        preferences: UserPreferences | None = None,
        startup_project: str | None = None,
    ) -> None:
        super().__init__()
        self.conductor = conductor
        self.preferences = preferences or UserPreferences()
        self._startup_project = startup_project

    async def on_mount(self) -> None:
        await self.conductor.start()
        if self._startup_project:
            try:
                await self.conductor.add_project(self._startup_project)
            except OSError:
                logger.exception("Could not open %s", self._startup_project)
        self.push_screen(MainScreen(self.conductor, self.preferences))

    async def on_unmount(self) -> None:
        await self.conductor.shutdown()

    def _main_screen(self) -> MainScreen | None:
        screen = self.screen
        return screen if isinstance(screen, MainScreen) else None

    def action_new_chat(self) -> None:
        screen = self._main_screen()
        if screen is not None:
            screen.new_chat()

    def action_stop(self) -> None:
        screen = self._main_screen()
        if screen is not None:
            screen.stop()

    def action_clear_chat(self) -> None:
        screen = self._main_screen()
        if screen is not None:
            screen.clear_chat()

    def action_close_agent(self) -> None:
        screen = self._main_screen()
        if screen is not None:
            screen.close_agent()

    async def action_quit(self) -> None:
        await self.conductor.shutdown()
        await super().action_quit()
