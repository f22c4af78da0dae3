"""
Structured error handling for the F# client runtime.

Every failure that reaches the activation caller is a ``FSharpClientError``
carrying a stable code, a user-facing message and optional recovery hints.
Races that are absorbed locally (stale progress notifications, double
dispose) never raise.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from fsharp_client.constants import utcnow


class ErrorCode(IntEnum):
    """Internal error codes for categorization."""

    # Platform Errors (1000-1999)
    PLATFORM_UNSUPPORTED = 1001

    # Provisioning Errors (2000-2999)
    DOWNLOAD_FAILED = 2001
    EXTRACT_FAILED = 2002

    # Process Errors (3000-3999)
    PROCESS_SPAWN_FAILED = 3001
    TRANSPORT_FAILED = 3002

    # Configuration Errors (4000-4999)
    INVALID_CONFIG = 4001


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class RecoveryAction:
    """Suggested action to recover from an error."""

    description: str
    command: str | None = None


@dataclass
class ErrorContext:
    """Context information for an error."""

    operation: str | None = None
    file_path: str | None = None
    url: str | None = None
    component: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
    additional_info: dict[str, Any] = field(default_factory=dict)


class FSharpClientError(Exception):
    """Base error class for the client runtime."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str,
        severity: str = ErrorSeverity.MEDIUM,
        context: ErrorContext | None = None,
        recovery_actions: list[RecoveryAction] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.severity = severity
        self.user_message = user_message
        self.context = context or ErrorContext()
        self.recovery_actions = recovery_actions or []
        self.original_error = original_error

        self.context.timestamp = utcnow()

    def get_formatted_message(self) -> str:
        """Get a formatted error message for display to users."""
        parts = [
            f"[Error] {self.user_message}",
            f"   Code: {self.code.value}",
        ]

        if self.context.operation:
            parts.append(f"   Operation: {self.context.operation}")
        if self.context.file_path:
            parts.append(f"   File: {self.context.file_path}")
        if self.context.url:
            parts.append(f"   URL: {self.context.url}")

        if self.recovery_actions:
            parts.append("")
            parts.append("Suggested actions:")
            for i, action in enumerate(self.recovery_actions, 1):
                parts.append(f"   {i}. {action.description}")
                if action.command:
                    parts.append(f"      Run: {action.command}")

        return "\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "name": self.__class__.__name__,
            "code": self.code.value,
            "message": str(self),
            "user_message": self.user_message,
            "severity": self.severity,
            "context": {
                "operation": self.context.operation,
                "file_path": self.context.file_path,
                "url": self.context.url,
                "component": self.context.component,
                "timestamp": self.context.timestamp.isoformat(),
                "additional_info": self.context.additional_info,
            },
            "recovery_actions": [
                {"description": a.description, "command": a.command}
                for a in self.recovery_actions
            ],
            "original_error": str(self.original_error) if self.original_error else None,
        }


class UnsupportedPlatformError(FSharpClientError):
    """The host OS/CPU has no language server package."""

    def __init__(
        self,
        message: str,
        user_message: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.PLATFORM_UNSUPPORTED,
            message=message,
            user_message=user_message or "This platform is not supported by the F# language server.",
            severity=ErrorSeverity.CRITICAL,
            context=context,
            recovery_actions=[
                RecoveryAction(
                    "Point 'custom_command' at a language server you built yourself",
                    command="export FSHARP_CLIENT_CUSTOM_COMMAND=/path/to/FSharpLanguageServer",
                ),
            ],
        )


class DownloadFailedError(FSharpClientError):
    """Downloading the server archive failed.

    Exactly one of ``status_code`` (HTTP response outside 2xx) or
    ``network_error`` (connection-level failure) is set.
    """

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        network_error: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.DOWNLOAD_FAILED,
            message=message,
            user_message="Failed to download the F# language server.",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(
                operation="download",
                url=url,
                additional_info={"status_code": status_code},
            ),
            recovery_actions=[
                RecoveryAction("Check your network connection and activate again"),
            ],
            original_error=network_error,
        )
        self.url = url
        self.status_code = status_code
        self.network_error = network_error


class ExtractFailedError(FSharpClientError):
    """The downloaded archive could not be unpacked into the install dir."""

    def __init__(
        self,
        message: str,
        install_dir: str,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.EXTRACT_FAILED,
            message=message,
            user_message="Failed to unpack the F# language server.",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(operation="extract", file_path=install_dir),
            recovery_actions=[
                RecoveryAction("Activate again; the install directory is rebuilt from scratch"),
            ],
            original_error=original_error,
        )


class ProcessSpawnFailedError(FSharpClientError):
    """A child process (server or console) could not be launched."""

    def __init__(
        self,
        message: str,
        executable: str,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.PROCESS_SPAWN_FAILED,
            message=message,
            user_message=f"Failed to start {executable}.",
            severity=ErrorSeverity.CRITICAL,
            context=ErrorContext(operation="spawn", file_path=executable),
            original_error=original_error,
        )


class TransportError(FSharpClientError):
    """The JSON-RPC connection to the server broke or returned an error."""

    def __init__(
        self,
        message: str,
        user_message: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.TRANSPORT_FAILED,
            message=message,
            user_message=user_message or "Lost connection to the F# language server.",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(component="transport"),
            original_error=original_error,
        )


class ConfigurationError(FSharpClientError):
    """Error related to configuration issues."""

    def __init__(
        self,
        message: str,
        user_message: str | None = None,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.INVALID_CONFIG,
            message=message,
            user_message=user_message or "Configuration error occurred.",
            severity=ErrorSeverity.HIGH,
            context=context,
            original_error=original_error,
        )
