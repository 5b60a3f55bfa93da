"""Focus tracking: which agent is active and which chat each agent shows.

The rendered chat is always derived (active chat of the active agent),
so it can never disagree with the mapping it is computed from.
"""
from __future__ import annotations


class FocusTracker:
    """Global agent focus plus the per-agent active chat mapping."""

    def __init__(self) -> None:
        self.active_agent_id: str | None = None
        self._active_chat_by_agent: dict[str, str] = {}

    def active_chat_for(self, agent_id: str) -> str | None:
        return self._active_chat_by_agent.get(agent_id)

    def bind(self, agent_id: str, chat_id: str) -> None:
        self._active_chat_by_agent[agent_id] = chat_id

    def unbind(self, agent_id: str) -> None:
        self._active_chat_by_agent.pop(agent_id, None)

    def focus(self, agent_id: str | None) -> None:
        self.active_agent_id = agent_id

    def is_focused(self, agent_id: str) -> bool:
        return self.active_agent_id == agent_id

    @property
    def rendered_chat_id(self) -> str | None:
        if self.active_agent_id is None:
            return None
        return self._active_chat_by_agent.get(self.active_agent_id)

    def is_rendered(self, chat_id: str) -> bool:
        return chat_id is not None and chat_id == self.rendered_chat_id
