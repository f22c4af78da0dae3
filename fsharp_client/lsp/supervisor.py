"""Language server process lifecycle.

Starts the server as a child process speaking JSON-RPC over its standard
input/output, demultiplexes inbound notifications to registered handlers
and shuts the process down again, gracefully when the connection is alive.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from fsharp_client.host.events import Disposable
from fsharp_client.lsp.subprocess_util import render_command, subprocess_kwargs, terminate_process
from fsharp_client.lsp.transport import JsonRpcConnection
from fsharp_client.types.errors import ProcessSpawnFailedError, TransportError

log = logging.getLogger(__name__)

NotificationHandler = Callable[[Any], None]

CLIENT_NAME = "fsharp-client"


class ServerProcessHandle:
    """One server child process plus its connection.

    Created by ``ProcessSupervisor.start``; torn down by ``ProcessSupervisor.stop``.
    """

    def __init__(self, executable: str, args: Sequence[str]) -> None:
        self.executable = executable
        self.args = tuple(args)
        self.process: asyncio.subprocess.Process | None = None
        self.connection: JsonRpcConnection | None = None
        self.initialize_result: dict[str, Any] | None = None
        self._handlers: dict[str, list[NotificationHandler]] = {}
        self._stderr_task: asyncio.Task | None = None
        self._stopped = False

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    @property
    def is_connected(self) -> bool:
        return self.connection is not None and not self.connection.is_closed

    @property
    def stopped(self) -> bool:
        return self._stopped

    def on_notification(self, method: str, handler: NotificationHandler) -> Disposable:
        """Register ``handler`` for notifications named ``method``.

        Handlers for the same name run synchronously in registration order.
        """
        handlers = self._handlers.setdefault(method, [])
        handlers.append(handler)

        def _remove() -> None:
            try:
                handlers.remove(handler)
            except ValueError:
                pass

        return Disposable(_remove)

    def dispatch_notification(self, method: str, params: Any) -> None:
        handlers = self._handlers.get(method)
        if not handlers:
            log.debug("No handler for notification %s", method)
            return
        for handler in list(handlers):
            try:
                handler(params)
            except Exception:
                log.exception("Handler for %s raised", method)

    async def request(self, method: str, params: Any = None, timeout: float | None = None) -> Any:
        if self.connection is None:
            raise TransportError(f"Cannot send '{method}': server is not started")
        return await self.connection.request(method, params, timeout=timeout)

    async def notify(self, method: str, params: Any = None) -> None:
        if self.connection is None:
            raise TransportError(f"Cannot send '{method}': server is not started")
        await self.connection.notify(method, params)

    async def initialize(
        self,
        root_path: str | os.PathLike | None = None,
        initialization_options: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Run the ``initialize`` / ``initialized`` handshake.

        Returns the server's initialize result (its capabilities).
        """
        root = Path(root_path).resolve() if root_path is not None else None
        params: dict[str, Any] = {
            "processId": os.getpid(),
            "clientInfo": {"name": CLIENT_NAME},
            "rootPath": str(root) if root else None,
            "rootUri": root.as_uri() if root else None,
            "capabilities": {
                "window": {"workDoneProgress": True},
                "workspace": {"configuration": True, "workspaceFolders": True},
                "textDocument": {"synchronization": {"didSave": True}},
            },
            "workspaceFolders": [{"uri": root.as_uri(), "name": root.name}] if root else None,
        }
        if initialization_options is not None:
            params["initializationOptions"] = initialization_options
        result = await self.request("initialize", params, timeout=timeout)
        self.initialize_result = result if isinstance(result, dict) else {}
        await self.notify("initialized", {})
        log.info("Language server initialized (pid %s)", self.pid)
        return self.initialize_result

    def get_status(self) -> dict[str, Any]:
        return {
            "command": render_command(self.executable, self.args),
            "pid": self.pid,
            "running": self.is_running,
            "connected": self.is_connected,
            "stopped": self._stopped,
            "notifications": sorted(name for name, hs in self._handlers.items() if hs),
        }


class ProcessSupervisor:
    """Starts and stops the language server; at most one live handle."""

    def __init__(
        self,
        trace: bool = False,
        shutdown_timeout: float = 5.0,
        debug_attach_seconds: float = 0.0,
    ) -> None:
        self._trace = trace
        self._shutdown_timeout = shutdown_timeout
        self._debug_attach_seconds = debug_attach_seconds
        self._current: ServerProcessHandle | None = None

    @property
    def current(self) -> ServerProcessHandle | None:
        return self._current

    async def start(
        self,
        executable_path: str | os.PathLike,
        args: Sequence[str] = (),
        cwd: str | os.PathLike | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ServerProcessHandle:
        """Spawn the server and connect to its stdio.

        An already running server is stopped first.

        :raises ProcessSpawnFailedError: the executable could not be launched
        """
        if self._current is not None and not self._current.stopped:
            log.info("Replacing running language server (pid %s)", self._current.pid)
            await self.stop(self._current)

        executable = str(executable_path)
        handle = ServerProcessHandle(executable, args)
        self._current = handle
        command_line = render_command(executable, handle.args)
        log.info("Starting language server: %s", command_line)
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *handle.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                **subprocess_kwargs(),
            )
        except OSError as exc:
            handle._stopped = True
            raise ProcessSpawnFailedError(
                f"Failed to start language server {command_line}: {exc}",
                executable=executable,
                original_error=exc,
            ) from exc

        handle.process = process
        if handle.stopped:
            # stop() ran while we were spawning
            await terminate_process(process, self._shutdown_timeout)
            return handle

        assert process.stdout is not None and process.stdin is not None
        handle.connection = JsonRpcConnection(
            process.stdout,
            process.stdin,
            on_notification=handle.dispatch_notification,
            trace=self._trace,
            name=f"{Path(executable).name}[{process.pid}]",
        )
        handle.connection.start()
        handle._stderr_task = asyncio.create_task(
            self._drain_stderr(process), name=f"server-stderr-{process.pid}"
        )

        if self._debug_attach_seconds > 0:
            log.warning(
                "Language server started with pid %s; waiting %.0fs for a debugger to attach",
                process.pid,
                self._debug_attach_seconds,
            )
            await asyncio.sleep(self._debug_attach_seconds)
        return handle

    async def stop(self, handle: ServerProcessHandle | None = None) -> None:
        """Shut the server down. Idempotent; a never-started handle is a no-op."""
        handle = handle or self._current
        if handle is None or handle.stopped:
            return
        handle._stopped = True
        if self._current is handle:
            self._current = None

        process = handle.process
        connection = handle.connection
        if process is None:
            return

        if connection is not None and not connection.is_closed and process.returncode is None:
            try:
                await connection.request("shutdown", timeout=self._shutdown_timeout)
                await connection.notify("exit")
                await asyncio.wait_for(process.wait(), self._shutdown_timeout)
            except (TransportError, asyncio.TimeoutError) as exc:
                log.warning("Graceful shutdown of language server failed: %s", exc)

        returncode = await terminate_process(process, self._shutdown_timeout)
        if connection is not None:
            await connection.close()
        if handle._stderr_task is not None:
            handle._stderr_task.cancel()
            try:
                await handle._stderr_task
            except asyncio.CancelledError:
                pass
        log.info("Language server stopped (pid %s, exit code %s)", process.pid, returncode)

    async def _drain_stderr(self, process: asyncio.subprocess.Process) -> None:
        stream = process.stderr
        if stream is None:
            return
        while True:
            line = await stream.readline()
            if not line:
                break
            log.debug("server stderr: %s", line.decode("utf-8", errors="replace").rstrip())
