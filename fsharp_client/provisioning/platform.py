"""Host platform detection.

Maps what the interpreter reports about the OS and CPU onto the canonical
``PlatformSignature`` used as the release table key.
"""

from __future__ import annotations

import functools
import platform

from fsharp_client.types.core import Architecture, OperatingSystem, PlatformSignature
from fsharp_client.types.errors import ErrorContext, UnsupportedPlatformError

_SYSTEMS: dict[str, OperatingSystem] = {
    "windows": OperatingSystem.WINDOWS,
    "linux": OperatingSystem.LINUX,
    "darwin": OperatingSystem.MACOS,
}

_MACHINES: dict[str, Architecture] = {
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "x64": Architecture.X64,
    "i386": Architecture.X86,
    "i686": Architecture.X86,
    "x86": Architecture.X86,
}


def signature_for(system: str, machine: str) -> PlatformSignature:
    """Pure mapping from an OS/CPU report to a signature.

    :raises UnsupportedPlatformError: if either value is unrecognized
    """
    os_kind = _SYSTEMS.get(system.strip().lower())
    arch = _MACHINES.get(machine.strip().lower())
    if os_kind is None or arch is None:
        raise UnsupportedPlatformError(
            f"Unsupported platform: system={system!r} machine={machine!r}",
            context=ErrorContext(
                operation="resolve_platform",
                additional_info={"system": system, "machine": machine},
            ),
        )
    return PlatformSignature(os_kind, arch)


@functools.cache
def _host_signature() -> PlatformSignature:
    return signature_for(platform.system(), platform.machine())


def resolve_platform(system: str | None = None, machine: str | None = None) -> PlatformSignature:
    """Signature of the running host, or of an explicit OS/CPU pair.

    The host value is computed once and cached for the process lifetime.
    A failed host resolution is not cached and raises again on every call.
    """
    if system is None and machine is None:
        return _host_signature()
    return signature_for(system or platform.system(), machine or platform.machine())


def is_windows() -> bool:
    return platform.system().lower() == "windows"
