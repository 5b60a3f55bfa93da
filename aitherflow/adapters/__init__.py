"""Conversation orchestration: state containers, event routing and commands."""
