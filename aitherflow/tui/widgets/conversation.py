"""Conversation view: scrollable message list for the rendered chat."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.markdown import Markdown as RichMarkdown
from rich.text import Text
from textual.containers import VerticalScroll
from textual.widgets import Static

from aitherflow.shared.formatters.tool_call import format_tool_call
from aitherflow.shared.models.message import Message, MessageRole, ToolActivity


def _tool_line(activity: ToolActivity, show_details: bool) -> Text:
    formatted = format_tool_call(activity.tool_name, activity.tool_input)
    if not activity.closed:
        status, color = "⏳", "yellow"
    elif activity.is_error:
        status, color = "✘", "red"
    else:
        status, color = "✔", "green"
    line = Text()
    line.append(f"{status} ", style=color)
    line.append(f"{formatted.icon} {formatted.label}".strip())
    if show_details and formatted.detail:
        line.append(f"  {formatted.detail}", style="dim")
    if show_details and activity.result:
        preview = activity.result.strip().splitlines()[0] if activity.result.strip() else ""
        if preview:
            line.append(f"\n    {preview[:120]}", style="dim italic")
    return line


def render_message(message: Message, show_tool_details: bool = False) -> RenderableType:
    """Header line, body and tool lines of one message."""
    ts = message.timestamp.astimezone().strftime("%H:%M:%S")
    header = Text()
    if message.role == MessageRole.USER:
        header.append("You", style="bold magenta")
    else:
        header.append("Assistant", style="bold cyan")
        if message.streaming:
            header.append(" …", style="yellow")
    header.append(f" {ts}", style="dim")

    parts: list[RenderableType] = [header]
    if message.role == MessageRole.ASSISTANT:
        if message.text:
            parts.append(RichMarkdown(message.text))
        parts.extend(_tool_line(t, show_tool_details) for t in message.tools)
    else:
        parts.append(Text(message.text))
    return Group(*parts)


class MessageWidget(Static):
    """A single rendered message."""

    DEFAULT_CSS = """
    MessageWidget {
        height: auto;
        margin: 0 0 1 0;
        padding: 0 1;
    }
    MessageWidget.message-user {
        border-left: thick $secondary;
    }
    MessageWidget.message-assistant {
        border-left: thick $primary;
    }
    """

    def __init__(self, message: Message, show_tool_details: bool = False, **kwargs) -> None:
        self.message = message
        self._show_tool_details = show_tool_details
        css_class = (
            "message-user" if message.role == MessageRole.USER else "message-assistant"
        )
        super().__init__(
            render_message(message, show_tool_details), classes=css_class, **kwargs,
        )

    def refresh_message(self) -> None:
        self.update(render_message(self.message, self._show_tool_details))


class ConversationView(VerticalScroll):
    """Shows one chat's messages; switching chats replaces the whole list."""

    DEFAULT_CSS = """
    ConversationView {
        height: 1fr;
    }
    """

    def __init__(self, show_tool_details: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.show_tool_details = show_tool_details
        self._chat_id: str | None = None
        self._widgets: list[MessageWidget] = []

    @property
    def chat_id(self) -> str | None:
        return self._chat_id

    @property
    def message_count(self) -> int:
        return len(self._widgets)

    async def show(self, chat_id: str | None, messages: list[Message]) -> None:
        """Render *messages* for *chat_id*, reusing widgets where possible."""
        same_chat = chat_id == self._chat_id
        prefix_matches = same_chat and len(messages) >= len(self._widgets) and all(
            w.message is m for w, m in zip(self._widgets, messages)
        )
        if not prefix_matches:
            await self.remove_children()
            self._widgets = []
            self._chat_id = chat_id

        # Existing widgets: only the tail can have changed text or tools
        if self._widgets:
            self._widgets[-1].refresh_message()

        new = [
            MessageWidget(m, self.show_tool_details)
            for m in messages[len(self._widgets):]
        ]
        if new:
            self._widgets.extend(new)
            await self.mount_all(new)
        self.scroll_end(animate=False)
