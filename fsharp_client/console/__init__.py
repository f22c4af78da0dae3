"""Interactive console (REPL) management."""

from .process import ConsoleProcessHandle, ConsoleProcessManager

__all__ = ["ConsoleProcessHandle", "ConsoleProcessManager"]
