"""Session host: one long-lived ``claude`` process per agent.

``start_session`` spawns the CLI in the agent's project folder, writes
the first prompt and returns. A background reader task parses stdout
and emits typed events through the sink given to the constructor; when
stdout closes it emits ``processExited`` and forgets the session.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from aitherflow.adapters.events import CliEvent, ErrorEvent, ProcessExited
from aitherflow.engine.config import HostConfig
from aitherflow.engine.errors import (
    CliNotFoundError,
    SessionNotFoundError,
    SessionSpawnError,
    SessionWriteError,
    StreamParseError,
)
from aitherflow.engine.parser import StreamParser
from aitherflow.engine.process import StderrTail, build_cli_args, build_stdin_message

logger = logging.getLogger(__name__)

# Signature: async def sink(event: CliEvent) -> None
EventSink = Callable[[CliEvent], Awaitable[None]]

# Tool results can put very long lines on stdout
_STREAM_LIMIT = 16 * 1024 * 1024


@dataclass
class CliSession:
    """A running CLI process and its reader tasks."""
    agent_id: str
    process: asyncio.subprocess.Process
    parser: StreamParser
    stderr: StderrTail
    tasks: list[asyncio.Task] = field(default_factory=list)

    @property
    def running(self) -> bool:
        return self.process.returncode is None


class ClaudeSessionHost:
    """Spawns and drives ``claude`` processes, keyed by agent id."""

    def __init__(self, emit: EventSink, config: HostConfig | None = None) -> None:
        self._emit = emit
        self._config = config or HostConfig()
        self._sessions: dict[str, CliSession] = {}

    def has_active_session(self, agent_id: str) -> bool:
        session = self._sessions.get(agent_id)
        return session is not None and session.running

    @property
    def active_agents(self) -> list[str]:
        return [aid for aid, s in self._sessions.items() if s.running]

    async def start_session(
        self,
        agent_id: str,
        prompt: str,
        project_path: str | None = None,
        model: str | None = None,
    ) -> None:
        """Spawn a CLI for *agent_id* and send *prompt* as the first message.

        Any process already running for the agent is killed first.
        """
        previous = self._sessions.pop(agent_id, None)
        if previous is not None:
            logger.info("Replacing running CLI for agent %s", agent_id[:8])
            await self._terminate(previous)

        if project_path and not os.path.isdir(project_path):
            raise SessionSpawnError(
                agent_id, f"project folder does not exist: {project_path}",
            )

        command = self._config.claude_cli
        args = build_cli_args(model)
        logger.debug("Spawning %s %s (cwd=%s)", command, " ".join(args), project_path)
        try:
            # Argument list, no shell
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=project_path or None,
                limit=_STREAM_LIMIT,
            )
        except FileNotFoundError as exc:
            raise CliNotFoundError(agent_id, command) from exc
        except OSError as exc:
            raise SessionSpawnError(agent_id, str(exc)) from exc

        session = CliSession(
            agent_id=agent_id,
            process=process,
            parser=StreamParser(
                agent_id, preview_chars=self._config.tool_result_preview_chars,
            ),
            stderr=StderrTail(self._config.stderr_limit),
        )
        # Registered before the first write so stop_session can kill it
        self._sessions[agent_id] = session
        logger.info("Spawned CLI for agent %s (pid=%s)", agent_id[:8], process.pid)

        try:
            await self._write(session, prompt)
        except SessionWriteError:
            self._sessions.pop(agent_id, None)
            await self._terminate(session)
            raise

        loop = asyncio.get_running_loop()
        session.tasks.append(loop.create_task(
            session.stderr.collect(process.stderr),
            name=f"cli-stderr-{agent_id[:8]}",
        ))
        session.tasks.append(loop.create_task(
            self._read_stdout(session),
            name=f"cli-reader-{agent_id[:8]}",
        ))

    async def send_message(self, agent_id: str, prompt: str) -> None:
        """Write a follow-up *prompt* to the agent's running CLI."""
        session = self._sessions.get(agent_id)
        if session is None or not session.running:
            raise SessionNotFoundError(agent_id)
        await self._write(session, prompt)

    async def stop_session(self, agent_id: str) -> None:
        """Kill the agent's CLI and wait for it. No-op when none is running."""
        session = self._sessions.pop(agent_id, None)
        if session is None:
            logger.debug("stop_session: no CLI for agent %s", agent_id[:8])
            return
        logger.info("Stopping CLI for agent %s", agent_id[:8])
        await self._terminate(session)

    async def kill_all(self) -> None:
        for agent_id in list(self._sessions):
            await self.stop_session(agent_id)

    # ── internals ───────────────────────────────────────────────────

    async def _write(self, session: CliSession, prompt: str) -> None:
        stdin = session.process.stdin
        if stdin is None or stdin.is_closing():
            raise SessionWriteError(session.agent_id, "stdin is closed")
        try:
            stdin.write(build_stdin_message(prompt).encode("utf-8"))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise SessionWriteError(session.agent_id, str(exc) or "broken pipe") from exc

    async def _terminate(self, session: CliSession) -> None:
        current = asyncio.current_task()
        for task in session.tasks:
            if task is not current:
                task.cancel()
        if session.running:
            with contextlib.suppress(ProcessLookupError):
                session.process.kill()
        await session.process.wait()
        for task in session.tasks:
            if task is not current:
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    async def _read_stdout(self, session: CliSession) -> None:
        agent_id = session.agent_id
        stdout = session.process.stdout
        try:
            while True:
                raw = await stdout.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                try:
                    events = session.parser.parse_line(line)
                except StreamParseError as exc:
                    logger.warning(
                        "Parse error for agent %s: %s | line: %.200s",
                        agent_id[:8], exc, line,
                    )
                    events = [ErrorEvent(agent_id=agent_id, message=f"Parse error: {exc}")]
                for event in events:
                    await self._deliver(event)
        except (ValueError, OSError) as exc:
            # ValueError: a line exceeded the stream limit
            logger.exception("Reading CLI output failed for agent %s", agent_id[:8])
            await self._deliver(ErrorEvent(agent_id=agent_id, message=f"CLI output error: {exc}"))
            with contextlib.suppress(ProcessLookupError):
                session.process.kill()

        exit_code = await session.process.wait()
        for task in session.tasks:
            if task is not asyncio.current_task():
                await task
        stderr = session.stderr.text.strip()
        if stderr:
            logger.debug("CLI stderr for agent %s:\n%s", agent_id[:8], stderr)
        logger.info("CLI for agent %s exited with code %s", agent_id[:8], exit_code)

        if self._sessions.get(agent_id) is session:
            del self._sessions[agent_id]
        await self._deliver(ProcessExited(agent_id=agent_id, exit_code=exit_code))

    async def _deliver(self, event: CliEvent) -> None:
        try:
            await self._emit(event)
        except Exception:
            logger.exception("Event sink failed for %s", event.event_type)
