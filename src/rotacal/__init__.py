"""rotacal - deterministic work schedule generation for rotating shifts."""

__version__ = "0.1.0"
