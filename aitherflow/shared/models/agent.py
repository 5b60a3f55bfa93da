"""Agent and chat data models.

An agent is a workspace bound to one project folder with at most one
live CLI session. Chats are conversation threads owned by one agent.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid

__all__ = ["Agent", "Chat", "DEFAULT_CHAT_TITLE", "new_id"]

DEFAULT_CHAT_TITLE = "New Chat"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Agent:
    id: str
    name: str
    project_path: str
    # Sidebar expansion state (chat list shown under the agent)
    expanded: bool = False


@dataclass
class Chat:
    id: str
    agent_id: str
    title: str = DEFAULT_CHAT_TITLE
    created_at: datetime = field(default_factory=_utcnow)
    # Host error that arrived while the chat was not on screen.
    pending_error: str | None = None
