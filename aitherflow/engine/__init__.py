"""Claude CLI session host: process management and stream-json parsing."""
