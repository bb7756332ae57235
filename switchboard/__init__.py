"""switchboard: prefix-command runtime for chat bots."""

__version__ = "1.0.0"
