"""Ephemeral UI state for the chat currently on screen.

``thinking``, ``current_tool`` and ``error`` always describe the
rendered chat. Per-agent facts (whether a turn is in flight, last model,
last usage) are kept separately so that focusing an agent can rebuild
the global flags from that agent's own state.
"""
from __future__ import annotations

from dataclasses import dataclass

from aitherflow.adapters.subscription import Observable
from aitherflow.shared.models.message import ToolActivity


@dataclass
class AgentUsage:
    """Token usage and cost reported for an agent's last turn."""
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


class UiState(Observable):
    """Thinking indicator, tool activity banner and error line."""

    def __init__(self) -> None:
        super().__init__()
        self.thinking: bool = False
        self.current_tool: ToolActivity | None = None
        self.error: str | None = None
        # Agents with a turn in flight (sent, not yet completed/exited/stopped)
        self._busy_agents: set[str] = set()
        self._models: dict[str, str] = {}
        self._usage: dict[str, AgentUsage] = {}

    # ── global flags ────────────────────────────────────────────────

    def set_thinking(self, thinking: bool) -> None:
        if self.thinking != thinking:
            self.thinking = thinking
            self._notify("ui")

    def set_current_tool(self, activity: ToolActivity | None) -> None:
        if self.current_tool is not activity:
            self.current_tool = activity
            self._notify("ui")

    def clear_activity(self) -> None:
        """Clear both the thinking indicator and the tool banner."""
        changed = self.thinking or self.current_tool is not None
        self.thinking = False
        self.current_tool = None
        if changed:
            self._notify("ui")

    def set_error(self, message: str | None) -> None:
        if self.error != message:
            self.error = message
            self._notify("ui")

    def clear_error(self) -> None:
        self.set_error(None)

    def rehydrate(self, agent_id: str, error: str | None = None) -> None:
        """Rebuild the global flags for a newly rendered chat of *agent_id*."""
        self.thinking = agent_id in self._busy_agents
        self.current_tool = None
        self.error = error
        self._notify("ui", agent_id)

    # ── per-agent state ─────────────────────────────────────────────

    def mark_busy(self, agent_id: str, busy: bool = True) -> None:
        if busy == (agent_id in self._busy_agents):
            return
        if busy:
            self._busy_agents.add(agent_id)
        else:
            self._busy_agents.discard(agent_id)
        self._notify("ui", agent_id)

    def is_busy(self, agent_id: str) -> bool:
        return agent_id in self._busy_agents

    @property
    def busy_agents(self) -> frozenset[str]:
        return frozenset(self._busy_agents)

    def set_model(self, agent_id: str, model: str) -> None:
        self._models[agent_id] = model
        self._notify("ui", agent_id)

    def model_for(self, agent_id: str) -> str | None:
        return self._models.get(agent_id)

    def set_usage(self, agent_id: str, usage: AgentUsage) -> None:
        self._usage[agent_id] = usage
        self._notify("ui", agent_id)

    def usage_for(self, agent_id: str) -> AgentUsage:
        return self._usage.get(agent_id, AgentUsage())

    def forget_agent(self, agent_id: str) -> None:
        self._busy_agents.discard(agent_id)
        self._models.pop(agent_id, None)
        self._usage.pop(agent_id, None)
