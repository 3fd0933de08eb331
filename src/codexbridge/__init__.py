"""codexbridge — run the Codex CLI as a streaming tool and manage its credentials."""

__version__ = "0.1.0"
