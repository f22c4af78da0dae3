"""
Shared utilities for the client runtime:
- Logging (STDERR-only, loguru)
"""

from .logger import channel_logger, configure_logging, is_debug_enabled, logger

__all__ = [
    "channel_logger",
    "configure_logging",
    "is_debug_enabled",
    "logger",
]
