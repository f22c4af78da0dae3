"""
Release table for the F# language server packages.
"""

from collections.abc import Mapping
from types import MappingProxyType

from fsharp_client.constants import RELEASE_TOKEN, RELEASES_BASE_URL
from fsharp_client.types.core import (
    Architecture,
    ChannelKind,
    DownloadChannel,
    OperatingSystem,
    PackageDescriptor,
    PlatformSignature,
)
from fsharp_client.types.errors import ErrorContext, UnsupportedPlatformError

WINDOWS_X64 = PlatformSignature(OperatingSystem.WINDOWS, Architecture.X64)
LINUX_X64 = PlatformSignature(OperatingSystem.LINUX, Architecture.X64)
MACOS_X64 = PlatformSignature(OperatingSystem.MACOS, Architecture.X64)

SERVER_PACKAGES: Mapping[PlatformSignature, PackageDescriptor] = MappingProxyType(
    {
        WINDOWS_X64: PackageDescriptor(
            executable_relative_path="FSharpLanguageServer.exe",
            download_url_template=f"{RELEASES_BASE_URL}/{RELEASE_TOKEN}/coc-fsharp-win10-x64.zip",
        ),
        LINUX_X64: PackageDescriptor(
            executable_relative_path="FSharpLanguageServer",
            download_url_template=f"{RELEASES_BASE_URL}/{RELEASE_TOKEN}/coc-fsharp-linux-x64.zip",
        ),
        MACOS_X64: PackageDescriptor(
            executable_relative_path="FSharpLanguageServer",
            download_url_template=f"{RELEASES_BASE_URL}/{RELEASE_TOKEN}/coc-fsharp-osx.10.11-x64.zip",
        ),
    }
)


def resolve_url(template: str, channel: DownloadChannel) -> str:
    """
    Substitute the release token for the given channel.

    Stable returns the template unchanged; nightly and specific tags replace
    every occurrence of the token.
    """
    match channel.kind:
        case ChannelKind.STABLE:
            return template
        case ChannelKind.NIGHTLY:
            return template.replace(RELEASE_TOKEN, "nightly")
        case ChannelKind.SPECIFIC_TAG:
            return template.replace(RELEASE_TOKEN, str(channel.tag))
        case _:
            raise ValueError(f"Unhandled download channel: {channel}")


class ReleaseRepository:
    """Read-only lookup from platform signature to a concrete download."""

    def __init__(self, packages: Mapping[PlatformSignature, PackageDescriptor] = SERVER_PACKAGES) -> None:
        self._packages = MappingProxyType(dict(packages))

    @property
    def supported_platforms(self) -> list[PlatformSignature]:
        return sorted(self._packages, key=str)

    def descriptor(self, signature: PlatformSignature) -> PackageDescriptor:
        """
        :raises UnsupportedPlatformError: if no package exists for ``signature``
        """
        try:
            return self._packages[signature]
        except KeyError:
            supported = ", ".join(str(s) for s in self.supported_platforms)
            raise UnsupportedPlatformError(
                f"No language server package for platform {signature} (supported: {supported})",
                context=ErrorContext(operation="describe", additional_info={"platform": str(signature)}),
            ) from None

    def describe(self, signature: PlatformSignature, channel: DownloadChannel) -> tuple[str, str]:
        """Return ``(executable_relative_path, url)`` for a platform and channel."""
        descriptor = self.descriptor(signature)
        return descriptor.executable_relative_path, resolve_url(descriptor.download_url_template, channel)
