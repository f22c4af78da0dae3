"""Command registration surface.

Named user-invocable actions, the way an editor exposes them on its
command palette.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from fsharp_client.host.events import Disposable
from fsharp_client.utils.logger import logger

CommandCallback = Callable[..., Awaitable[Any] | Any]


class CommandRegistry:
    """Maps command names to callbacks."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandCallback] = {}

    def register_command(self, name: str, callback: CommandCallback) -> Disposable:
        """Register ``callback`` under ``name``.

        :raises ValueError: if the name is already taken
        """
        if name in self._commands:
            raise ValueError(f"Command '{name}' is already registered")
        self._commands[name] = callback
        logger.debug("Registered command {}", name)

        def _unregister() -> None:
            if self._commands.get(name) is callback:
                del self._commands[name]

        return Disposable(_unregister)

    def has_command(self, name: str) -> bool:
        return name in self._commands

    def names(self) -> list[str]:
        return sorted(self._commands)

    async def execute(self, name: str, *args: Any) -> Any:
        """Run a command, awaiting it if it is a coroutine function.

        :raises ValueError: if no such command is registered
        """
        callback = self._commands.get(name)
        if callback is None:
            raise ValueError(f"Unknown command '{name}'")
        result = callback(*args)
        if inspect.isawaitable(result):
            result = await result
        return result
