"""Aither Flow: multi-agent chat client for long-lived Claude CLI sessions."""

__version__ = "0.1.0"
