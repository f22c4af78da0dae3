"""
Command line entry point.

    fsharp-client platform
    fsharp-client install [--channel nightly] [--install-dir DIR]
    fsharp-client serve [--root DIR]
    fsharp-client repl
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from typing import Any

import click

from fsharp_client import __version__
from fsharp_client.cli._context import cli_extension_scope
from fsharp_client.config import ClientSettings, load_settings
from fsharp_client.console.process import ConsoleProcessManager
from fsharp_client.host import LogStatusSurface, SubprocessTerminalSurface
from fsharp_client.provisioning.platform import resolve_platform
from fsharp_client.provisioning.provisioner import BinaryProvisioner
from fsharp_client.types.errors import FSharpClientError
from fsharp_client.utils.logger import configure_logging, logger


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run ``coro``, turning client errors into a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except FSharpClientError as exc:
        click.echo(exc.get_formatted_message(), err=True)
        sys.exit(1)


def _settings(ctx: click.Context, **overrides: Any) -> ClientSettings:
    try:
        return load_settings(ctx.obj.get("config"), **overrides)
    except FSharpClientError as exc:
        click.echo(exc.get_formatted_message(), err=True)
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="fsharp-client", message="fsharp-client v%(version)s")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Settings file (default: ~/.fsharp-client/config.json)")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """fsharp-client - F# language server provisioning and supervision.

    Downloads the F# language server for this platform, runs it over stdio
    and manages an interactive F# console.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def platform() -> None:
    """Print this host's platform signature."""
    try:
        click.echo(str(resolve_platform()))
    except FSharpClientError as exc:
        click.echo(exc.get_formatted_message(), err=True)
        sys.exit(1)


@cli.command()
@click.option("--channel", default=None, help="stable, nightly or a release tag")
@click.option("--install-dir", type=click.Path(file_okay=False), default=None)
@click.pass_context
def install(ctx: click.Context, channel: str | None, install_dir: str | None) -> None:
    """Download and install the language server if it is not present."""
    settings = _settings(ctx, channel=channel, install_dir=install_dir)

    async def _install() -> str:
        provisioner = BinaryProvisioner(download_timeout=settings.download_timeout, status=LogStatusSurface())
        executable = await provisioner.ensure_installed(
            resolve_platform(), settings.download_channel, settings.install_path
        )
        return str(executable)

    click.echo(_run(_install()))


@cli.command()
@click.option("--root", type=click.Path(file_okay=False, exists=True), default=".",
              help="Workspace root handed to the server")
@click.option("--channel", default=None, help="stable, nightly or a release tag")
@click.pass_context
def serve(ctx: click.Context, root: str, channel: str | None) -> None:
    """Activate: provision, start the server and show its progress until it exits."""
    settings = _settings(ctx, channel=channel)

    async def _serve() -> None:
        async with cli_extension_scope(settings, root) as extension:
            assert extension.server is not None and extension.server.connection is not None
            click.echo(f"Language server running (pid {extension.server.pid}); press Ctrl+C to stop.")
            await extension.server.connection.wait_closed()
            logger.warning("Language server connection closed")

    try:
        _run(_serve())
    except KeyboardInterrupt:
        click.echo("Stopped.")


@cli.command()
@click.pass_context
def repl(ctx: click.Context) -> None:
    """Start the F# console and evaluate each line typed on stdin."""
    settings = _settings(ctx)

    async def _repl() -> None:
        manager = ConsoleProcessManager(
            SubprocessTerminalSurface(),
            command=settings.console_command,
            args=settings.console_args,
        )
        handle = await manager.ensure_started()
        try:
            while handle.is_live:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    break
                await manager.eval_line(handle, line.rstrip("\n"))
        finally:
            await manager.dispose(handle)

    try:
        _run(_repl())
    except KeyboardInterrupt:
        click.echo("Stopped.")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
