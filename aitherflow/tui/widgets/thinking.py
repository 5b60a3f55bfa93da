"""Thinking indicator: shown while the rendered chat's agent is working."""

from __future__ import annotations

import time

from textual.timer import Timer
from textual.widgets import Static

from aitherflow.shared.formatters.tool_call import format_tool_call
from aitherflow.shared.models.message import ToolActivity


def _format_elapsed(seconds: float) -> str:
    """Format elapsed seconds into a human-readable string."""
    secs = int(seconds)
    if secs < 60:
        return f"{secs}s"
    elif secs < 3600:
        m, s = divmod(secs, 60)
        return f"{m}m {s}s"
    else:
        h, remainder = divmod(secs, 3600)
        m = remainder // 60
        return f"{h}h {m}m"


class ThinkingIndicator(Static):
    """Animated "Thinking..." line, replaced by the tool label while a tool runs."""

    DEFAULT_CSS = """
    ThinkingIndicator {
        height: 1;
        padding: 0 1;
        display: none;
    }
    ThinkingIndicator.-active {
        display: block;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__("", markup=True, **kwargs)
        self._thinking = False
        self._tool: ToolActivity | None = None
        self._dot_count = 1
        self._started_at: float | None = None
        self._timer: Timer | None = None

    @property
    def active(self) -> bool:
        return self._thinking or self._tool is not None

    @property
    def text(self) -> str:
        if self._tool is not None:
            formatted = format_tool_call(self._tool.tool_name, self._tool.tool_input)
            return f"{formatted.icon} {formatted.label}".strip()
        if self._thinking:
            return "Thinking" + "." * self._dot_count
        return ""

    def set_activity(self, thinking: bool, tool: ToolActivity | None) -> None:
        was_active = self.active
        self._thinking = thinking
        self._tool = tool
        if self.active and not was_active:
            self._started_at = time.monotonic()
            if self._timer is None:
                self._timer = self.set_interval(0.4, self._tick)
        elif not self.active:
            self._started_at = None
            if self._timer is not None:
                self._timer.stop()
                self._timer = None
        self.set_class(self.active, "-active")
        self._render_text()

    def on_unmount(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def _tick(self) -> None:
        self._dot_count = (self._dot_count % 3) + 1
        self._render_text()

    def _render_text(self) -> None:
        text = self.text.replace("[", "\\[")
        if not text:
            self.update("")
            return
        elapsed = ""
        if self._started_at is not None:
            elapsed = f" [dim]({_format_elapsed(time.monotonic() - self._started_at)})[/]"
        self.update(f"[italic]{text}[/]{elapsed}")
