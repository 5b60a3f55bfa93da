"""Parser for the Claude CLI ``stream-json`` output.

Each stdout line is one JSON object. ``StreamParser`` turns a line into
zero or more typed events for a single agent, carrying the partial text
of the current turn between lines:

- ``completed_text``: text of earlier assistant messages in this turn
  (committed when a ``user`` line, i.e. a tool result, arrives).
- ``delta_text``: streamed deltas of the assistant message in progress.

Both accumulators reset on ``result``.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from aitherflow.adapters.events import (
    CliEvent,
    ErrorEvent,
    MessageComplete,
    ModelInfo,
    SessionId,
    StreamChunk,
    ToolResult,
    ToolUse,
    TurnComplete,
    UsageInfo,
)
from aitherflow.engine.errors import StreamParseError

logger = logging.getLogger(__name__)

TOOL_RESULT_PREVIEW_CHARS = 500


def combine_text(completed: str, current: str) -> str:
    """Join two text segments with a blank line, skipping empty ones."""
    if not completed:
        return current
    if not current:
        return completed
    return f"{completed}\n\n{current}"


def _content_blocks(parsed: dict[str, Any]) -> list[dict[str, Any]]:
    message = parsed.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _text_from_blocks(blocks: list[dict[str, Any]]) -> str:
    return "".join(
        b["text"] for b in blocks
        if b.get("type") == "text" and isinstance(b.get("text"), str)
    )


def _tool_result_text(block: dict[str, Any]) -> str:
    content = block.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            b["text"] for b in content
            if isinstance(b, dict)
            and b.get("type") == "text"
            and isinstance(b.get("text"), str)
        )
    return ""


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(int(value), 0)


def _cost(parsed: dict[str, Any]) -> float:
    for key in ("total_cost_usd", "cost_usd"):
        value = parsed.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return 0.0


class StreamParser:
    """Stateful line parser for one agent's CLI session."""

    def __init__(
        self,
        agent_id: str,
        preview_chars: int = TOOL_RESULT_PREVIEW_CHARS,
    ) -> None:
        self.agent_id = agent_id
        self.preview_chars = preview_chars
        self.completed_text = ""
        self.delta_text = ""

    def reset(self) -> None:
        self.completed_text = ""
        self.delta_text = ""

    def parse_line(self, line: str) -> list[CliEvent]:
        """Parse one NDJSON line. Raises StreamParseError on invalid JSON."""
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError as exc:
            raise StreamParseError(f"Invalid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise StreamParseError(
                f"Invalid JSON: expected an object, got {type(parsed).__name__}"
            )

        event_type = parsed.get("type", "")
        if event_type == "system":
            return self._parse_system(parsed)
        if event_type == "stream_event":
            return self._parse_stream_event(parsed)
        if event_type == "assistant":
            return self._parse_assistant(parsed)
        if event_type == "user":
            return self._parse_user(parsed)
        if event_type == "result":
            return self._parse_result(parsed)
        logger.debug("Unknown stream-json event type: %r", event_type)
        return []

    # ── per-type handlers ───────────────────────────────────────────

    def _parse_system(self, parsed: dict[str, Any]) -> list[CliEvent]:
        events: list[CliEvent] = []
        session_id = parsed.get("session_id")
        if isinstance(session_id, str):
            events.append(SessionId(agent_id=self.agent_id, session_id=session_id))
        model = parsed.get("model")
        if isinstance(model, str):
            events.append(ModelInfo(agent_id=self.agent_id, model=model))
        return events

    def _parse_stream_event(self, parsed: dict[str, Any]) -> list[CliEvent]:
        inner = parsed.get("event")
        if not isinstance(inner, dict) or inner.get("type") != "content_block_delta":
            return []
        delta = inner.get("delta")
        if not isinstance(delta, dict) or delta.get("type") != "text_delta":
            return []
        chunk = delta.get("text")
        if not isinstance(chunk, str):
            return []
        self.delta_text += chunk
        return [StreamChunk(
            agent_id=self.agent_id,
            text=combine_text(self.completed_text, self.delta_text),
        )]

    def _parse_assistant(self, parsed: dict[str, Any]) -> list[CliEvent]:
        events: list[CliEvent] = []
        blocks = _content_blocks(parsed)

        text = _text_from_blocks(blocks)
        if text:
            had_deltas = bool(self.delta_text)
            self.delta_text = ""
            # Without --include-partial-messages deltas never arrive
            if not had_deltas:
                events.append(StreamChunk(
                    agent_id=self.agent_id,
                    text=combine_text(self.completed_text, text),
                ))

        for block in blocks:
            if block.get("type") != "tool_use":
                continue
            tool_input = block.get("input")
            events.append(ToolUse(
                agent_id=self.agent_id,
                tool_use_id=str(block.get("id") or ""),
                tool_name=str(block.get("name") or "unknown"),
                tool_input=tool_input if isinstance(tool_input, dict) else {},
            ))
        return events

    def _parse_user(self, parsed: dict[str, Any]) -> list[CliEvent]:
        # A user line means the previous assistant message is done
        if self.delta_text:
            self.completed_text = combine_text(self.completed_text, self.delta_text)
            self.delta_text = ""

        events: list[CliEvent] = []
        for block in _content_blocks(parsed):
            if block.get("type") != "tool_result":
                continue
            events.append(ToolResult(
                agent_id=self.agent_id,
                tool_use_id=str(block.get("tool_use_id") or ""),
                output_preview=_tool_result_text(block)[:self.preview_chars],
                is_error=block.get("is_error") is True,
            ))
        return events

    def _parse_result(self, parsed: dict[str, Any]) -> list[CliEvent]:
        events: list[CliEvent] = []
        result = parsed.get("result")
        result_text = result if isinstance(result, str) else ""

        final_text = combine_text(self.completed_text, self.delta_text) or result_text
        if parsed.get("is_error") is True:
            events.append(ErrorEvent(
                agent_id=self.agent_id,
                message=result_text or "Unknown CLI error",
            ))
        elif final_text:
            events.append(MessageComplete(agent_id=self.agent_id, text=final_text))

        usage = parsed.get("usage")
        usage = usage if isinstance(usage, dict) else {}
        input_tokens = _as_int(usage.get("input_tokens"))
        output_tokens = _as_int(usage.get("output_tokens"))
        if input_tokens or output_tokens:
            events.append(UsageInfo(
                agent_id=self.agent_id,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost_usd=_cost(parsed),
            ))

        self.reset()
        events.append(TurnComplete(agent_id=self.agent_id))
        return events
