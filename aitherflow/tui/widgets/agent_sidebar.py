"""Agent sidebar: open agents with their chats."""

from __future__ import annotations

from rich.markup import escape
from textual.widgets import Tree

from aitherflow.shared.models.agent import Agent, Chat

# Node payloads: ("agent", agent_id) or ("chat", chat_id)
NodeRef = tuple[str, str]


class AgentSidebar(Tree[NodeRef]):
    """Tree of agents; an expanded agent lists its chats."""

    DEFAULT_CSS = """
    AgentSidebar {
        width: 28;
        border-right: solid $panel;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__("Agents", **kwargs)
        self.show_root = False
        self.auto_expand = False

    def populate(
        self,
        agents: list[Agent],
        chats_by_agent: dict[str, list[Chat]],
        *,
        active_agent_id: str | None,
        active_chat_by_agent: dict[str, str | None],
        busy_agents: frozenset[str],
    ) -> None:
        """Rebuild the tree from the current agent/chat graph."""
        self.clear()
        for agent in agents:
            marker = "● " if agent.id in busy_agents else ""
            label = f"{marker}{escape(agent.name)}"
            if agent.id == active_agent_id:
                label = f"[bold]{label}[/bold]"
            node = self.root.add(label, data=("agent", agent.id), expand=agent.expanded)
            active_chat = active_chat_by_agent.get(agent.id)
            for index, chat in enumerate(chats_by_agent.get(agent.id, []), start=1):
                chat_label = f"{escape(chat.title)} #{index}"
                if chat.id == active_chat:
                    chat_label = f"▸ {chat_label}"
                if chat.pending_error:
                    chat_label = f"{chat_label} [red]![/red]"
                node.add_leaf(chat_label, data=("chat", chat.id))
