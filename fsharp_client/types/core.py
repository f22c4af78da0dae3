"""
Core value types shared by provisioning and activation.

These are the small immutable records that flow between the platform
resolver, the release repository and the provisioner.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Self


class OperatingSystem(str, Enum):
    """Operating systems a language server package may target."""

    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"

    def __str__(self) -> str:
        return self.value


class Architecture(str, Enum):
    """CPU architectures a language server package may target."""

    X64 = "x64"
    X86 = "x86"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PlatformSignature:
    """OS + CPU pair, rendered as a short lookup key such as ``linux-x64``."""

    os: OperatingSystem
    arch: Architecture

    def __str__(self) -> str:
        return f"{self.os.value}-{self.arch.value}"

    @property
    def key(self) -> str:
        return str(self)

    @property
    def is_windows(self) -> bool:
        return self.os is OperatingSystem.WINDOWS

    @classmethod
    def parse(cls, key: str) -> Self:
        """Parse ``"<os>-<arch>"`` back into a signature.

        :raises ValueError: if either half is not a known enum value
        """
        os_part, sep, arch_part = key.strip().lower().partition("-")
        if not sep:
            raise ValueError(f"Malformed platform signature: {key!r}")
        return cls(OperatingSystem(os_part), Architecture(arch_part))


@dataclass(frozen=True)
class PackageDescriptor:
    """Where a platform's server archive lives and what to run from it."""

    executable_relative_path: str
    download_url_template: str


class ChannelKind(str, Enum):
    STABLE = "stable"
    NIGHTLY = "nightly"
    SPECIFIC_TAG = "tag"


@dataclass(frozen=True)
class DownloadChannel:
    """Which release of the server to fetch.

    ``tag`` is only set for ``ChannelKind.SPECIFIC_TAG``.
    """

    kind: ChannelKind
    tag: str | None = None

    def __post_init__(self) -> None:
        if self.kind is ChannelKind.SPECIFIC_TAG and not self.tag:
            raise ValueError("A specific-tag channel needs a non-empty tag")
        if self.kind is not ChannelKind.SPECIFIC_TAG and self.tag is not None:
            raise ValueError(f"Channel {self.kind.value} does not take a tag")

    @classmethod
    def stable(cls) -> Self:
        return cls(ChannelKind.STABLE)

    @classmethod
    def nightly(cls) -> Self:
        return cls(ChannelKind.NIGHTLY)

    @classmethod
    def specific(cls, tag: str) -> Self:
        return cls(ChannelKind.SPECIFIC_TAG, tag)

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parse a config value: ``stable``, ``nightly`` or any release tag."""
        value = text.strip()
        if not value:
            raise ValueError("Download channel must not be empty")
        match value.lower():
            case "stable":
                return cls.stable()
            case "nightly":
                return cls.nightly()
            case _:
                return cls.specific(value)

    def __str__(self) -> str:
        if self.kind is ChannelKind.SPECIFIC_TAG:
            return str(self.tag)
        return self.kind.value
