"""CLI activation context -- every CLI command that needs a running server
uses ``cli_extension_scope`` instead of driving ``FSharpExtension`` directly.
This provides:
- Settings resolution identical to the library entry points
- Deactivation (server shutdown, console teardown) on command exit, even on error
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator
from pathlib import Path

from fsharp_client.config import ClientSettings
from fsharp_client.extension import FSharpExtension
from fsharp_client.host import Host
from fsharp_client.utils.logger import logger


@contextlib.asynccontextmanager
async def cli_extension_scope(
    settings: ClientSettings,
    root: str | None = None,
    host: Host | None = None,
) -> AsyncGenerator[FSharpExtension, None]:
    """Activate the extension for ``root`` and deactivate it on exit."""
    extension = FSharpExtension(settings, host=host, root_path=Path(root or ".").resolve())
    try:
        await extension.activate()
        yield extension
    finally:
        try:
            await extension.deactivate()
        except Exception:
            logger.opt(exception=True).debug("Error during CLI deactivation")
