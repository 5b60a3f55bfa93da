"""Exception hierarchy for the conductor.

Specific exceptions for each failure mode. Session host commands
raise ``SessionHostError`` subclasses; the command dispatcher turns
them into chat-scoped error strings.
"""
from __future__ import annotations


class ConductorError(Exception):
    """Base exception for all conductor errors."""


class SessionHostError(ConductorError):
    """A start/send/stop command against the session host failed."""
    def __init__(self, agent_id: str, reason: str):
        self.agent_id = agent_id
        self.reason = reason
        super().__init__(reason)


class CliNotFoundError(SessionHostError):
    """The claude executable could not be found."""
    def __init__(self, agent_id: str, command: str):
        self.command = command
        super().__init__(
            agent_id,
            f"Claude CLI not found. Make sure '{command}' is installed and in PATH.",
        )


class SessionSpawnError(SessionHostError):
    """The CLI process could not be started."""
    def __init__(self, agent_id: str, reason: str):
        super().__init__(agent_id, f"Failed to spawn claude: {reason}")


class SessionNotFoundError(SessionHostError):
    """No live CLI session exists for the agent."""
    def __init__(self, agent_id: str):
        super().__init__(agent_id, "No active session for this agent")


class SessionWriteError(SessionHostError):
    """Writing a prompt to the CLI's stdin failed."""
    def __init__(self, agent_id: str, reason: str):
        super().__init__(agent_id, f"Failed to send message: {reason}")


class StreamParseError(ConductorError):
    """A line of CLI output was not valid stream-json."""


class AgentNotFoundError(ConductorError):
    """Requested agent does not exist."""
    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}")


class ChatNotFoundError(ConductorError):
    """Requested chat does not exist."""
    def __init__(self, chat_id: str):
        self.chat_id = chat_id
        super().__init__(f"Chat not found: {chat_id}")


class ProjectStoreError(ConductorError):
    """projects.json could not be read or written."""
