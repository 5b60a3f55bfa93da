"""Event types emitted by the session host.

Each event is tagged with the ``agent_id`` of the CLI session that
produced it; ``event_type`` carries the camelCase event name
(``"streamChunk"``, ``"toolUse"``, ...) used in log lines.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CliEvent:
    """Base event from a CLI session."""
    event_type: str = ""
    agent_id: str = ""


@dataclass
class SessionId(CliEvent):
    event_type: str = "sessionId"
    session_id: str = ""


@dataclass
class StreamChunk(CliEvent):
    """Full accumulated text of the assistant turn so far (not a delta)."""
    event_type: str = "streamChunk"
    text: str = ""


@dataclass
class MessageComplete(CliEvent):
    event_type: str = "messageComplete"
    text: str = ""


@dataclass
class ModelInfo(CliEvent):
    event_type: str = "modelInfo"
    model: str = ""


@dataclass
class UsageInfo(CliEvent):
    event_type: str = "usageInfo"
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


@dataclass
class ToolUse(CliEvent):
    event_type: str = "toolUse"
    tool_use_id: str = ""
    tool_name: str = ""
    tool_input: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult(CliEvent):
    event_type: str = "toolResult"
    tool_use_id: str = ""
    output_preview: str = ""
    is_error: bool = False


@dataclass
class TurnComplete(CliEvent):
    event_type: str = "turnComplete"


@dataclass
class ProcessExited(CliEvent):
    event_type: str = "processExited"
    exit_code: int | None = None


@dataclass
class ErrorEvent(CliEvent):
    event_type: str = "error"
    message: str = ""
