"""
Type definitions for the F# client runtime.
"""

# Core types
from .core import (
    Architecture,
    ChannelKind,
    DownloadChannel,
    OperatingSystem,
    PackageDescriptor,
    PlatformSignature,
)

# Error types
from .errors import (
    ConfigurationError,
    DownloadFailedError,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    ExtractFailedError,
    FSharpClientError,
    ProcessSpawnFailedError,
    RecoveryAction,
    TransportError,
    UnsupportedPlatformError,
)

__all__ = [
    # Core types
    "Architecture",
    "ChannelKind",
    "DownloadChannel",
    "OperatingSystem",
    "PackageDescriptor",
    "PlatformSignature",
    # Error types
    "ErrorCode",
    "ErrorSeverity",
    "RecoveryAction",
    "ErrorContext",
    "FSharpClientError",
    "UnsupportedPlatformError",
    "DownloadFailedError",
    "ExtractFailedError",
    "ProcessSpawnFailedError",
    "TransportError",
    "ConfigurationError",
]
