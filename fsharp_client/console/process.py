"""Interactive F# console (``dotnet fsi``) lifecycle.

At most one console is live at a time. It runs in a visible terminal, so
evaluation is fire-and-forget: text goes in, output is shown to the user
and never parsed here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence

from fsharp_client.constants import (
    CONSOLE_TITLE,
    DEFAULT_CONSOLE_ARGS,
    DEFAULT_CONSOLE_COMMAND,
    STATEMENT_TERMINATOR,
)
from fsharp_client.host.events import Disposable, EventEmitter
from fsharp_client.host.terminal import Terminal, TerminalSurface
from fsharp_client.utils.logger import channel_logger

console_log = channel_logger("fsharp-interactive")


class ConsoleProcessHandle:
    """A running console: its terminal, its close observer and its exit signal."""

    def __init__(self, title: str, terminal: Terminal) -> None:
        self.title = title
        self.terminal = terminal
        self._exited = EventEmitter[None]("console exited")
        self._close_subscription: Disposable | None = None
        self._has_exited = False

    @property
    def is_live(self) -> bool:
        return not self._has_exited

    def on_exited(self, listener: Callable[[None], None]) -> Disposable:
        """Subscribe to the end-of-life signal, which fires exactly once."""
        return self._exited.event(listener)

    def _observe(self, subscription: Disposable) -> None:
        self._close_subscription = subscription

    def _unobserve(self) -> None:
        if self._close_subscription is not None:
            self._close_subscription.dispose()
            self._close_subscription = None

    def _mark_exited(self) -> None:
        if self._has_exited:
            return
        self._has_exited = True
        self._unobserve()
        self._exited.fire(None)


class ConsoleProcessManager:
    """Owns the single interactive console."""

    def __init__(
        self,
        terminals: TerminalSurface,
        command: str = DEFAULT_CONSOLE_COMMAND,
        args: Sequence[str] = DEFAULT_CONSOLE_ARGS,
        terminator: str = STATEMENT_TERMINATOR,
    ) -> None:
        self._terminals = terminals
        self._command = command
        self._args = tuple(args)
        self._terminator = terminator
        self._current: ConsoleProcessHandle | None = None
        self._starting: asyncio.Task[ConsoleProcessHandle] | None = None
        self._dispose_requested = False

    @property
    def current(self) -> ConsoleProcessHandle | None:
        return self._current

    async def ensure_started(self, title: str = CONSOLE_TITLE) -> ConsoleProcessHandle:
        """Return the live console, starting a new one if there is none.

        Overlapping calls share one start. If ``dispose`` is called while the
        start is pending, the returned handle has already exited.

        :raises ProcessSpawnFailedError: the console command could not be launched
        """
        existing = self._current
        if existing is not None and existing.is_live:
            console_log.info("F# REPL already started.")
            existing.terminal.show(True)
            return existing
        if self._starting is None:
            self._dispose_requested = False
            self._starting = asyncio.create_task(self._start(title), name="fsharp-console-start")
        return await asyncio.shield(self._starting)

    async def _start(self, title: str) -> ConsoleProcessHandle:
        try:
            if self._current is not None:
                await self.dispose(self._current)

            console_log.info("F# REPL starting.")
            terminal = await self._terminals.create_terminal(title, self._command, self._args)
            handle = ConsoleProcessHandle(title, terminal)
            if self._dispose_requested:
                console_log.info("F# REPL disposed while starting")
                handle._mark_exited()
                await terminal.dispose()
                return handle

            def _on_close(closed: Terminal) -> None:
                if closed is terminal:
                    console_log.info("F# REPL terminated or terminal UI was closed")
                    handle._mark_exited()

            handle._observe(self._terminals.on_did_close_terminal(_on_close))
            handle.on_exited(lambda _: self._forget(handle))
            self._current = handle
            return handle
        finally:
            self._starting = None

    async def eval_line(self, handle: ConsoleProcessHandle, text: str) -> None:
        """Send ``text`` followed by the statement terminator."""
        await self.eval_lines(handle, [text])

    async def eval_lines(self, handle: ConsoleProcessHandle, lines: Iterable[str]) -> None:
        """Send several lines as one statement, terminated once at the end."""
        if not handle.is_live:
            console_log.debug("Dropping evaluation for a console that already exited")
            return
        for line in lines:
            await handle.terminal.send_text(line)
        await handle.terminal.send_text(self._terminator)

    def show(self, preserve_focus: bool = False) -> None:
        if self._current is not None and self._current.is_live:
            self._current.terminal.show(preserve_focus)

    async def dispose(self, handle: ConsoleProcessHandle | None = None) -> None:
        """Tear a console down. Idempotent.

        The close observer is removed before the process is stopped, so the
        exit signal is raised here exactly once rather than again by teardown.
        """
        if handle is None and self._starting is not None:
            self._dispose_requested = True
        handle = handle or self._current
        if handle is None:
            return
        handle._unobserve()
        was_live = handle.is_live
        handle._mark_exited()
        if self._current is handle:
            self._current = None
        if was_live:
            console_log.info("Terminating F# REPL process...")
            await handle.terminal.dispose()

    def _forget(self, handle: ConsoleProcessHandle) -> None:
        if self._current is handle:
            self._current = None
