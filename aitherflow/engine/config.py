"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via AITHERFLOW_* env vars.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r (expected a number)", name, raw)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r (expected an integer)", name, raw)
        return default


@dataclass
class HostConfig:
    """Session host and conductor configuration."""

    # Executable spawned for every agent session
    claude_cli: str = "claude"
    # Passed as --model when set; otherwise the CLI picks its default
    model: str | None = None

    # How long the tool banner lingers after a tool result (seconds)
    tool_clear_delay: float = 1.5
    # Raw events kept by the router for diagnostics
    event_log_size: int = 200
    event_queue_size: int = 5000

    # Bytes of CLI stderr retained per session (tail)
    stderr_limit: int = 64 * 1024
    # Characters of tool output kept in a toolResult preview
    tool_result_preview_chars: int = 500

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> HostConfig:
        """Load configuration from AITHERFLOW_* environment variables."""
        overrides = {
            k: v for k, v in os.environ.items() if k.startswith("AITHERFLOW_")
        }
        if overrides:
            logger.info(
                "HostConfig.from_env: AITHERFLOW_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(overrides.items())),
            )
        else:
            logger.debug("HostConfig.from_env: no AITHERFLOW_* env vars set, using defaults")

        config = cls(
            claude_cli=os.getenv("AITHERFLOW_CLAUDE_CLI", cls.claude_cli),
            model=os.getenv("AITHERFLOW_MODEL") or None,
            tool_clear_delay=_env_float(
                "AITHERFLOW_TOOL_CLEAR_DELAY", cls.tool_clear_delay,
            ),
            event_log_size=_env_int(
                "AITHERFLOW_EVENT_LOG_SIZE", cls.event_log_size,
            ),
            event_queue_size=_env_int(
                "AITHERFLOW_QUEUE_SIZE", cls.event_queue_size,
            ),
            stderr_limit=_env_int(
                "AITHERFLOW_STDERR_LIMIT", cls.stderr_limit,
            ),
            log_level=os.getenv("AITHERFLOW_LOG_LEVEL", cls.log_level),
        )
        logger.debug(
            "HostConfig.from_env: cli=%s model=%s log_level=%s",
            config.claude_cli, config.model, config.log_level,
        )
        return config
