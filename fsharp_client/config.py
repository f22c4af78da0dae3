"""
Client settings.

Resolved from, lowest precedence first: built-in defaults, a JSON config
file (``~/.fsharp-client/config.json`` unless another path is given), and
``FSHARP_CLIENT_*`` environment variables.
"""

from __future__ import annotations

import inspect
import json
import os
import shlex
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Self

from fsharp_client.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_CONSOLE_ARGS,
    DEFAULT_CONSOLE_COMMAND,
    DEFAULT_DOWNLOAD_TIMEOUT,
    DEFAULT_INSTALL_DIR,
)
from fsharp_client.types.core import DownloadChannel
from fsharp_client.types.errors import ConfigurationError, ErrorContext

ENV_PREFIX = "FSHARP_CLIENT_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass
class ClientSettings:
    """
    Configuration parameters
    """

    install_dir: str = str(DEFAULT_INSTALL_DIR)
    """Directory the server archive is extracted into"""
    channel: str = "nightly"
    """``stable``, ``nightly`` or a release tag"""
    custom_command: list[str] | None = None
    """Run this server command instead of the downloaded one; skips provisioning"""
    server_args: list[str] = field(default_factory=list)
    debug_attach: bool = False
    """Pause after spawning the server so a debugger can attach to its pid"""
    debug_attach_seconds: float = 10.0
    trace_server: bool = False
    """Log every JSON-RPC message exchanged with the server"""
    download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT
    shutdown_timeout: float = 5.0
    console_command: str = DEFAULT_CONSOLE_COMMAND
    console_args: list[str] = field(default_factory=lambda: list(DEFAULT_CONSOLE_ARGS))

    def __post_init__(self) -> None:
        if isinstance(self.custom_command, str):
            self.custom_command = shlex.split(self.custom_command) or None
        for name in ("server_args", "console_args"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, shlex.split(value))

    @classmethod
    def from_dict(cls, env: dict) -> Self:
        return cls(**{k: v for k, v in env.items() if k in inspect.signature(cls).parameters})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def download_channel(self) -> DownloadChannel:
        try:
            return DownloadChannel.parse(self.channel)
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid download channel {self.channel!r}: {exc}",
                context=ErrorContext(operation="channel"),
                original_error=exc,
            ) from exc

    @property
    def install_path(self) -> Path:
        return Path(self.install_dir).expanduser()

    def validate(self) -> None:
        """
        :raises ConfigurationError: on values no activation could use
        """
        _ = self.download_channel
        for name in ("download_timeout", "shutdown_timeout", "debug_attach_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
        if self.download_timeout <= 0:
            raise ConfigurationError(f"download_timeout must be positive, got {self.download_timeout}")
        if self.shutdown_timeout <= 0:
            raise ConfigurationError(f"shutdown_timeout must be positive, got {self.shutdown_timeout}")
        if self.debug_attach_seconds < 0:
            raise ConfigurationError(f"debug_attach_seconds must not be negative, got {self.debug_attach_seconds}")
        if self.custom_command is not None and not self.custom_command:
            raise ConfigurationError("custom_command must not be empty")
        if not self.console_command:
            raise ConfigurationError("console_command must not be empty")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", original_error=exc) from exc


def settings_from_environ(environ: Mapping[str, str]) -> dict[str, Any]:
    """Extract overrides from ``FSHARP_CLIENT_*`` variables."""
    overrides: dict[str, Any] = {}
    for f in fields(ClientSettings):
        var = ENV_PREFIX + f.name.upper()
        if var not in environ:
            continue
        raw = environ[var]
        if f.name in ("debug_attach", "trace_server"):
            overrides[f.name] = _parse_bool(var, raw)
        elif f.name in ("debug_attach_seconds", "download_timeout", "shutdown_timeout"):
            overrides[f.name] = _parse_float(var, raw)
        elif f.name in ("custom_command", "server_args", "console_args"):
            overrides[f.name] = shlex.split(raw)
        else:
            overrides[f.name] = raw
    return overrides


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON settings object; a missing file is an empty one."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(
            f"Cannot read config file {path}: {exc}",
            context=ErrorContext(operation="load_settings", file_path=str(path)),
            original_error=exc,
        ) from exc
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a JSON object",
            context=ErrorContext(operation="load_settings", file_path=str(path)),
        )
    unknown = sorted(set(data) - {f.name for f in fields(ClientSettings)})
    if unknown:
        raise ConfigurationError(
            f"Unknown settings in {path}: {', '.join(unknown)}",
            context=ErrorContext(operation="load_settings", file_path=str(path)),
        )
    return data


def load_settings(
    config_path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ClientSettings:
    """Merge defaults, the config file, the environment and explicit overrides."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    merged: dict[str, Any] = {}
    merged.update(read_config_file(path))
    merged.update(settings_from_environ(os.environ if environ is None else environ))
    merged.update({k: v for k, v in overrides.items() if v is not None})
    try:
        settings = ClientSettings.from_dict(merged)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}", original_error=exc) from exc
    settings.validate()
    return settings
