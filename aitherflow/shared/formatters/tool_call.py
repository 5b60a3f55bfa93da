"""Human-readable labels for tool invocations.

Adding a new tool label requires only a single decorated function:

    @tool_formatter("MyTool")
    def _format_my_tool(name, args):
        return FormattedToolCall(icon="🔧", label="Doing things", detail=...)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class FormattedToolCall:
    """Display form of one tool invocation."""

    icon: str = ""
    label: str = ""
    # Secondary text (command line, pattern, url); empty when nothing useful
    detail: str = ""


_FORMATTERS: dict[str, Callable[[str, dict], FormattedToolCall]] = {}


def tool_formatter(name: str):
    """Decorator to register a formatter for a given tool name."""
    def decorator(fn: Callable[[str, dict], FormattedToolCall]):
        _FORMATTERS[name] = fn
        return fn
    return decorator


def format_tool_call(name: str, args: dict[str, Any] | None = None) -> FormattedToolCall:
    """Format a tool call, falling back to the bare tool name."""
    args = args if isinstance(args, dict) else {}
    formatter = _FORMATTERS.get(name)
    if formatter is None:
        return FormattedToolCall(icon="🔧", label=name)
    return formatter(name, args)


def tool_label(name: str, args: dict[str, Any] | None = None) -> str:
    """One-line activity label, e.g. ``"Reading main.py"``."""
    return format_tool_call(name, args).label


def _basename(path: str) -> str:
    return os.path.basename(path.rstrip("/")) or path


def _file_name(args: dict) -> str:
    for key in ("file_path", "path"):
        value = args.get(key)
        if isinstance(value, str) and value:
            return _basename(value)
    return ""


def _trunc(text: str, length: int = 60) -> str:
    text = " ".join(text.split())
    if len(text) <= length:
        return text
    return text[: length - 1] + "…"


def _str_arg(args: dict, key: str) -> str:
    value = args.get(key)
    return value if isinstance(value, str) else ""


def _file_formatter(verb: str, icon: str):
    def _format(name: str, args: dict) -> FormattedToolCall:
        file_name = _file_name(args)
        return FormattedToolCall(
            icon=icon,
            label=f"{verb} {file_name}" if file_name else f"{verb} file",
            detail=_str_arg(args, "file_path") or _str_arg(args, "path"),
        )
    return _format


tool_formatter("Read")(_file_formatter("Reading", "📄"))
tool_formatter("Edit")(_file_formatter("Editing", "✏️"))
tool_formatter("Write")(_file_formatter("Writing", "📝"))


@tool_formatter("Bash")
def _format_bash(name: str, args: dict) -> FormattedToolCall:
    return FormattedToolCall(
        icon="💻",
        label="Running command",
        detail=_trunc(_str_arg(args, "command")),
    )


@tool_formatter("Glob")
def _format_glob(name: str, args: dict) -> FormattedToolCall:
    return FormattedToolCall(
        icon="🔍", label="Searching files", detail=_str_arg(args, "pattern"),
    )


@tool_formatter("Grep")
def _format_grep(name: str, args: dict) -> FormattedToolCall:
    return FormattedToolCall(
        icon="🔎", label="Searching code", detail=_trunc(_str_arg(args, "pattern")),
    )


@tool_formatter("TodoWrite")
def _format_todo_write(name: str, args: dict) -> FormattedToolCall:
    todos = args.get("todos")
    detail = f"{len(todos)} item(s)" if isinstance(todos, list) else ""
    return FormattedToolCall(icon="☑️", label="Updating tasks", detail=detail)


@tool_formatter("Task")
def _format_task(name: str, args: dict) -> FormattedToolCall:
    return FormattedToolCall(
        icon="🤖",
        label="Running subagent",
        detail=_trunc(_str_arg(args, "description") or _str_arg(args, "prompt")),
    )


@tool_formatter("WebSearch")
def _format_web_search(name: str, args: dict) -> FormattedToolCall:
    return FormattedToolCall(
        icon="🌐", label="Searching web", detail=_trunc(_str_arg(args, "query")),
    )


@tool_formatter("WebFetch")
def _format_web_fetch(name: str, args: dict) -> FormattedToolCall:
    return FormattedToolCall(
        icon="🌐", label="Fetching page", detail=_str_arg(args, "url"),
    )
