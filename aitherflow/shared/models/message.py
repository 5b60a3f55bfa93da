"""Message and tool activity models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _gen_id() -> str:
    return str(uuid.uuid4())


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ToolActivity:
    """One tool invocation performed by the CLI during a turn.

    Opened by a ``toolUse`` event and closed when the matching
    ``toolResult`` arrives.
    """
    tool_use_id: str
    tool_name: str
    tool_input: dict[str, Any] = field(default_factory=dict)
    result: str | None = None
    is_error: bool = False
    closed: bool = False

    def close(self, output: str, is_error: bool) -> None:
        self.result = output
        self.is_error = is_error
        self.closed = True


@dataclass
class Message:
    role: MessageRole
    text: str
    id: str = field(default_factory=_gen_id)
    timestamp: datetime = field(default_factory=_utcnow)
    # Assistant text still arriving; mutated in place until finalized.
    streaming: bool = False
    tools: list[ToolActivity] = field(default_factory=list)

    @property
    def is_streaming_assistant(self) -> bool:
        return self.role == MessageRole.ASSISTANT and self.streaming

    def find_tool(self, tool_use_id: str) -> ToolActivity | None:
        for activity in self.tools:
            if activity.tool_use_id == tool_use_id:
                return activity
        return None
