"""Status bar: bottom bar showing the focused agent's session state."""

from __future__ import annotations

from rich.text import Text
from textual.reactive import reactive
from textual.widget import Widget


class StatusBar(Widget):
    """Single-line status bar with agent, model, usage and session state."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        background: $panel;
    }
    """

    agent_name: reactive[str] = reactive("No agent")
    model: reactive[str] = reactive("—")
    tokens_used: reactive[int] = reactive(0)
    cost_usd: reactive[float] = reactive(0.0)
    status: reactive[str] = reactive("idle")

    def render(self) -> Text:
        status_colors = {
            "idle": "dim",
            "connected": "green",
            "streaming": "yellow",
            "error": "red bold",
        }
        color = status_colors.get(self.status, "white")

        bar = Text()
        bar.append(f" {self.agent_name} ", style="bold")
        bar.append(" │ ", style="dim")
        bar.append(self.model, style="cyan")
        bar.append(" │ ", style="dim")
        bar.append(f"{self.tokens_used:,} tokens", style="dim")
        bar.append(" │ ", style="dim")
        bar.append(f"${self.cost_usd:.4f}", style="dim")
        bar.append(" │ ", style="dim")
        bar.append(f"● {self.status}", style=color)
        return bar
