"""Claude CLI command line, stdin framing and stderr capture."""
from __future__ import annotations

import asyncio
import json

# stream-json in both directions; partial messages give text deltas
BASE_CLI_ARGS: tuple[str, ...] = (
    "-p",
    "--output-format", "stream-json",
    "--input-format", "stream-json",
    "--verbose",
    "--include-partial-messages",
)

DEFAULT_STDERR_LIMIT = 64 * 1024


def build_cli_args(model: str | None = None) -> list[str]:
    """Arguments passed to the ``claude`` executable."""
    args = list(BASE_CLI_ARGS)
    if model:
        args.extend(["--model", model])
    return args


def build_stdin_message(prompt: str) -> str:
    """Frame *prompt* as one stream-json user message line."""
    message = {
        "type": "user",
        "message": {
            "role": "user",
            "content": [{"type": "text", "text": prompt}],
        },
    }
    return json.dumps(message, ensure_ascii=False) + "\n"


class StderrTail:
    """Keeps the last *limit* characters written to a CLI's stderr."""

    def __init__(self, limit: int = DEFAULT_STDERR_LIMIT) -> None:
        self.limit = limit
        self._buf = ""

    def append(self, chunk: str) -> None:
        self._buf += chunk
        if len(self._buf) > self.limit:
            self._buf = self._buf[-self.limit:]

    @property
    def text(self) -> str:
        return self._buf

    async def collect(self, stream: asyncio.StreamReader) -> None:
        """Read *stream* to EOF into the buffer."""
        while True:
            line = await stream.readline()
            if not line:
                break
            self.append(line.decode("utf-8", errors="replace"))
