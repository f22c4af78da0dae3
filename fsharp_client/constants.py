"""Shared constants and helpers for the F# client runtime.

Centralizes the release URL token, the server's custom notification names,
default locations and timezone-aware datetime helpers.
"""

from datetime import datetime, timezone
from pathlib import Path


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime.

    Can be used directly as a ``default_factory`` in dataclass fields.
    """
    return datetime.now(timezone.utc)


# Placeholder in download URL templates replaced by the channel's release name.
RELEASE_TOKEN: str = "RELEASE"

RELEASES_BASE_URL: str = "https://github.com/yatli/coc-fsharp/releases/download"

# Per-user state directory; holds config.json and the default install dir.
DEFAULT_HOME_DIR: Path = Path.home() / ".fsharp-client"
DEFAULT_INSTALL_DIR: Path = DEFAULT_HOME_DIR / "server"
DEFAULT_CONFIG_PATH: Path = DEFAULT_HOME_DIR / "config.json"

# Socket timeout in seconds for each blocking operation of the archive download.
DEFAULT_DOWNLOAD_TIMEOUT: float = 300.0

# Custom notifications pushed by the server while it checks a project.
# Fixed contract with the server side.
START_PROGRESS: str = "fsharp/startProgress"
INCREMENT_PROGRESS: str = "fsharp/incrementProgress"
END_PROGRESS: str = "fsharp/endProgress"

# Interactive console defaults.
DEFAULT_CONSOLE_COMMAND: str = "dotnet"
DEFAULT_CONSOLE_ARGS: tuple[str, ...] = ("fsi", "--readline+")
CONSOLE_TITLE: str = "F# REPL"
STATEMENT_TERMINATOR: str = ";;"
