"""Slash command parser and help table."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ParsedCommand:
    """A parsed slash command."""

    name: str
    args: list[str]
    raw: str

    @property
    def arg_text(self) -> str:
        """Everything after the command name, whitespace preserved."""
        return self.raw[len(self.name) + 1:].strip()


def parse_command(text: str) -> ParsedCommand | None:
    """Parse a /command from input text.

    Returns None if text does not start with '/'.
    """
    stripped = text.strip()
    if not stripped.startswith("/") or stripped == "/":
        return None
    parts = stripped.split()
    name = parts[0][1:]  # remove leading '/'
    return ParsedCommand(name=name, args=parts[1:], raw=stripped)


COMMAND_HELP: dict[str, str] = {
    "new": "Start a new chat for the current agent",
    "open": "/open PATH: bookmark a project folder and open an agent for it",
    "projects": "List bookmarked projects (/projects NUMBER opens one)",
    "close": "Close the current agent (its bookmark is kept)",
    "stop": "Stop the current agent's CLI session",
    "clear": "Clear the current chat and end its CLI session",
    "help": "Show this help message",
}


def help_text() -> str:
    width = max(len(name) for name in COMMAND_HELP) + 2
    return "\n".join(
        f"/{name.ljust(width)}{desc}" for name, desc in COMMAND_HELP.items()
    )
