"""Activation of the F# integration.

One activation ties the pieces together: work out which server binary to
run (downloading it when needed), start it, hook the progress indicator to
its notifications and register the user-facing commands. The interactive
console is only created when the user first evaluates something.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from fsharp_client.config import ClientSettings
from fsharp_client.console.process import ConsoleProcessHandle, ConsoleProcessManager
from fsharp_client.constants import CONSOLE_TITLE
from fsharp_client.host import Disposable, Host
from fsharp_client.host.terminal import Terminal
from fsharp_client.lsp.progress import ProgressListener
from fsharp_client.lsp.supervisor import ProcessSupervisor, ServerProcessHandle
from fsharp_client.provisioning.platform import resolve_platform
from fsharp_client.provisioning.provisioner import BinaryProvisioner
from fsharp_client.types.errors import TransportError
from fsharp_client.utils.logger import logger

CMD_EVALUATE_LINE = "fsharp.evaluateLine"
CMD_EVALUATE_SELECTION = "fsharp.evaluateSelection"
CMD_RUN = "fsharp.run"
CMD_RUN_TEST = "fsharp.command.test.run"
CMD_SHOW_CONSOLE = "fsharp.showConsole"

INITIALIZE_TIMEOUT = 120.0


class FSharpExtension:
    """Owns everything one activation creates; ``deactivate`` releases it all."""

    def __init__(
        self,
        settings: ClientSettings,
        host: Host | None = None,
        root_path: str | os.PathLike | None = None,
        provisioner: BinaryProvisioner | None = None,
        supervisor: ProcessSupervisor | None = None,
    ) -> None:
        self.settings = settings
        self.host = host or Host()
        self.root_path = Path(root_path or os.getcwd()).resolve()
        self.provisioner = provisioner or BinaryProvisioner(
            download_timeout=settings.download_timeout,
            status=self.host.status,
        )
        self.supervisor = supervisor or ProcessSupervisor(
            trace=settings.trace_server,
            shutdown_timeout=settings.shutdown_timeout,
            debug_attach_seconds=settings.debug_attach_seconds if settings.debug_attach else 0.0,
        )
        self.progress = ProgressListener(self.host.status)
        self.server: ServerProcessHandle | None = None
        self._console: ConsoleProcessManager | None = None
        self._subscriptions: list[Disposable] = []

    @property
    def console(self) -> ConsoleProcessManager | None:
        return self._console

    async def resolve_server_command(self) -> tuple[str, list[str]]:
        """The server command line: the configured override, or the provisioned binary."""
        if self.settings.custom_command:
            command, *args = self.settings.custom_command
            logger.info("Using custom language server command {}", command)
            return command, [*args, *self.settings.server_args]
        signature = resolve_platform()
        executable = await self.provisioner.ensure_installed(
            signature, self.settings.download_channel, self.settings.install_path
        )
        return str(executable), list(self.settings.server_args)

    async def activate(self) -> ServerProcessHandle:
        """Provision, start and initialize the server, then register commands.

        :raises UnsupportedPlatformError, DownloadFailedError, ExtractFailedError:
            provisioning failed
        :raises ProcessSpawnFailedError: the server could not be launched
        :raises TransportError: the server did not complete initialization
        """
        command, args = await self.resolve_server_command()
        handle = await self.supervisor.start(command, args, cwd=self.root_path)
        # Bind before initializing: the server may start checking right away.
        self._subscriptions.append(self.progress.bind(handle))
        try:
            await handle.initialize(self.root_path, timeout=INITIALIZE_TIMEOUT)
        except asyncio.TimeoutError as exc:
            await self.supervisor.stop(handle)
            raise TransportError(
                f"Language server did not answer 'initialize' within {INITIALIZE_TIMEOUT:.0f}s",
                original_error=exc,
            ) from exc
        except TransportError:
            await self.supervisor.stop(handle)
            raise
        self.server = handle
        self._register_commands()
        logger.info("F# language support activated for {}", self.root_path)
        return handle

    async def deactivate(self) -> None:
        for subscription in reversed(self._subscriptions):
            subscription.dispose()
        self._subscriptions.clear()
        self.progress.end_progress()
        if self._console is not None:
            await self._console.dispose()
        if self.server is not None:
            await self.supervisor.stop(self.server)
            self.server = None
        logger.info("F# language support deactivated")

    def _register_commands(self) -> None:
        commands = self.host.commands
        self._subscriptions.extend(
            [
                commands.register_command(CMD_EVALUATE_LINE, self.evaluate_line),
                commands.register_command(CMD_EVALUATE_SELECTION, self.evaluate_selection),
                commands.register_command(CMD_RUN, self.run_project),
                commands.register_command(CMD_RUN_TEST, self.run_test),
                commands.register_command(CMD_SHOW_CONSOLE, self.show_console),
            ]
        )

    def _console_manager(self) -> ConsoleProcessManager:
        if self._console is None:
            self._console = ConsoleProcessManager(
                self.host.terminals,
                command=self.settings.console_command,
                args=self.settings.console_args,
            )
        return self._console

    async def start_console(self) -> ConsoleProcessHandle:
        return await self._console_manager().ensure_started(CONSOLE_TITLE)

    async def evaluate_line(self, line: str) -> None:
        await self.evaluate_selection(line)

    async def evaluate_selection(self, *lines: str) -> None:
        manager = self._console_manager()
        handle = await manager.ensure_started(CONSOLE_TITLE)
        await manager.eval_lines(handle, lines)

    async def show_console(self, preserve_focus: bool = False) -> None:
        if self._console is not None:
            self._console.show(preserve_focus)

    async def run_project(self, *args: object) -> Terminal:
        """``dotnet run`` the workspace in a new terminal."""
        logger.info("Running F# project in {}", self.root_path)
        terminal = await self.host.terminals.create_terminal(
            "F# console",
            "dotnet",
            ["run", *(f"{arg}" for arg in args)],
            cwd=str(self.root_path),
        )
        terminal.show(False)
        return terminal

    async def run_test(self, project_path: str, fully_qualified_name: str) -> Terminal:
        """Run one test through ``dotnet test`` filtered by its full name."""
        terminal = await self.host.terminals.create_terminal(
            "F# test",
            "dotnet",
            ["test", project_path, "--filter", f"FullyQualifiedName={fully_qualified_name}"],
            cwd=str(self.root_path),
        )
        terminal.show(False)
        return terminal
