"""Terminal/process-spawning surface.

A terminal is a visible subprocess the user can read from and type into.
``SubprocessTerminalSurface`` backs each terminal with a real child process
whose standard output is inherited from the host, so everything it prints
lands in front of the user, and whose standard input is a pipe the client
writes to.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Protocol

from fsharp_client.host.events import Disposable, EventEmitter
from fsharp_client.lsp.subprocess_util import render_command, subprocess_kwargs, terminate_process
from fsharp_client.types.errors import ProcessSpawnFailedError
from fsharp_client.utils.logger import logger


class Terminal(Protocol):
    name: str

    async def send_text(self, text: str, add_newline: bool = True) -> None: ...

    def show(self, preserve_focus: bool = False) -> None: ...

    async def dispose(self) -> None: ...


class TerminalSurface(Protocol):
    async def create_terminal(
        self,
        name: str,
        shell_path: str,
        shell_args: Sequence[str] = (),
        cwd: str | None = None,
    ) -> Terminal: ...

    def on_did_close_terminal(self, listener: Callable[[Terminal], None]) -> Disposable: ...


class SubprocessTerminal:
    def __init__(self, name: str, process: asyncio.subprocess.Process) -> None:
        self.name = name
        self.process = process

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def is_running(self) -> bool:
        return self.process.returncode is None

    async def send_text(self, text: str, add_newline: bool = True) -> None:
        stdin = self.process.stdin
        if stdin is None or stdin.is_closing() or not self.is_running:
            logger.debug("Dropping input for closed terminal {}", self.name)
            return
        payload = text + "\n" if add_newline else text
        stdin.write(payload.encode("utf-8"))
        try:
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("Terminal {} closed its input", self.name)

    def show(self, preserve_focus: bool = False) -> None:
        # Output is already inherited by the host's stdout.
        logger.debug("Showing terminal {} (preserve_focus={})", self.name, preserve_focus)

    async def dispose(self) -> None:
        stdin = self.process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()
        await terminate_process(self.process)


class SubprocessTerminalSurface:
    """Creates terminals and reports when any of them closes."""

    def __init__(self) -> None:
        self._closed = EventEmitter[Terminal]("onDidCloseTerminal")
        self._watchers: set[asyncio.Task] = set()

    async def create_terminal(
        self,
        name: str,
        shell_path: str,
        shell_args: Sequence[str] = (),
        cwd: str | None = None,
    ) -> SubprocessTerminal:
        command_line = render_command(shell_path, tuple(shell_args))
        logger.debug("Creating terminal {}: {}", name, command_line)
        try:
            process = await asyncio.create_subprocess_exec(
                shell_path,
                *shell_args,
                stdin=asyncio.subprocess.PIPE,
                cwd=cwd,
                **subprocess_kwargs(hide_window=False),
            )
        except OSError as exc:
            raise ProcessSpawnFailedError(
                f"Failed to start terminal '{name}': {command_line}: {exc}",
                executable=shell_path,
                original_error=exc,
            ) from exc

        terminal = SubprocessTerminal(name, process)
        watcher = asyncio.create_task(self._watch(terminal), name=f"terminal-watch-{process.pid}")
        self._watchers.add(watcher)
        watcher.add_done_callback(self._watchers.discard)
        return terminal

    async def _watch(self, terminal: SubprocessTerminal) -> None:
        returncode = await terminal.process.wait()
        logger.debug("Terminal {} exited with code {}", terminal.name, returncode)
        self._closed.fire(terminal)

    def on_did_close_terminal(self, listener: Callable[[Terminal], None]) -> Disposable:
        return self._closed.event(listener)
