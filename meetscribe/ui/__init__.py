"""Console user interface for meetscribe."""

from .console import SessionConsole

__all__ = ["SessionConsole"]
