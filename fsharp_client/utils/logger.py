"""
Logging setup for the client runtime.

Stdio Transport:
- The language server owns its own STDOUT/STDIN pipes, never ours.
- The interactive console inherits our STDOUT so its output is visible.

Logs therefore always go to STDERR, so they never interleave with what the
console prints.

Output channels:
- Components with their own output channel (the interactive console)
  log through ``channel_logger(name)``,
  which binds ``channel=<name>`` and is rendered as a prefix.
"""

import logging
import os
import sys

from loguru import logger as loguru_logger

_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "{extra[channel]: <18} | {message}"
)

_handler_id: int | None = None


class _LoguruBridge(logging.Handler):
    """Forwards stdlib ``logging`` records (the lsp package) to the loguru sink."""

    def emit(self, record: logging.LogRecord) -> None:
        loguru_logger.opt(exception=record.exc_info).log(record.levelname, record.getMessage())


_bridge = _LoguruBridge()


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return os.environ.get("DEBUG", "").lower() == "true"


def _stderr_sink(message) -> None:
    # Looked up per write: sys.stderr may be swapped after configuration.
    sys.stderr.write(message)


def configure_logging(verbose: bool = False) -> None:
    """(Re)install the single STDERR sink.

    Safe to call more than once; the previous sink installed here is replaced.
    """
    global _handler_id
    level = "DEBUG" if verbose or is_debug_enabled() else "INFO"
    if _handler_id is None:
        loguru_logger.remove()
    else:
        loguru_logger.remove(_handler_id)
    _handler_id = loguru_logger.add(_stderr_sink, level=level, format=_FORMAT, colorize=False)

    stdlib_logger = logging.getLogger("fsharp_client")
    stdlib_logger.setLevel(level)
    if _bridge not in stdlib_logger.handlers:
        stdlib_logger.addHandler(_bridge)


def channel_logger(name: str):
    """Logger bound to a named output channel."""
    return loguru_logger.bind(channel=name)


loguru_logger.configure(extra={"channel": "fsharp-client"})

# Export loguru logger for direct use
logger = loguru_logger
