"""Per-agent session liveness.

An agent is alive only after the host acknowledges its session with a
``sessionId`` event; it becomes dead on explicit stop or when the
process exits.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Tracks which agents currently have a running CLI session."""

    def __init__(self) -> None:
        self._alive: set[str] = set()

    def is_alive(self, agent_id: str) -> bool:
        return agent_id in self._alive

    def mark_alive(self, agent_id: str) -> None:
        if agent_id not in self._alive:
            logger.debug("Session alive for agent %s", agent_id[:8])
        self._alive.add(agent_id)

    def mark_dead(self, agent_id: str) -> None:
        if agent_id in self._alive:
            logger.debug("Session dead for agent %s", agent_id[:8])
        self._alive.discard(agent_id)
