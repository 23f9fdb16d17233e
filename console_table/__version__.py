"""Version of console-table."""

__version__ = "0.1.0"
