"""
Core value types and the error hierarchy.
"""

import pytest

from fsharp_client.types import (
    Architecture,
    ChannelKind,
    DownloadChannel,
    DownloadFailedError,
    ErrorCode,
    ErrorContext,
    ExtractFailedError,
    FSharpClientError,
    OperatingSystem,
    PlatformSignature,
    ProcessSpawnFailedError,
    TransportError,
    UnsupportedPlatformError,
)


class TestPlatformSignature:
    """Tests for PlatformSignature."""

    def test_renders_as_key(self):
        """Signature renders as os-arch."""
        sig = PlatformSignature(OperatingSystem.LINUX, Architecture.X64)
        assert str(sig) == "linux-x64"
        assert sig.key == "linux-x64"

    def test_equality_and_hashing(self):
        """Equal signatures are interchangeable as dict keys."""
        a = PlatformSignature(OperatingSystem.MACOS, Architecture.X64)
        b = PlatformSignature(OperatingSystem.MACOS, Architecture.X64)
        assert a == b
        assert {a: 1}[b] == 1

    def test_is_windows(self):
        assert PlatformSignature(OperatingSystem.WINDOWS, Architecture.X64).is_windows
        assert not PlatformSignature(OperatingSystem.LINUX, Architecture.X64).is_windows

    def test_parse_roundtrip(self):
        """parse() accepts what str() produces."""
        sig = PlatformSignature(OperatingSystem.WINDOWS, Architecture.X86)
        assert PlatformSignature.parse(str(sig)) == sig
        assert PlatformSignature.parse(" Linux-X64 ") == PlatformSignature(OperatingSystem.LINUX, Architecture.X64)

    @pytest.mark.parametrize("key", ["linux", "linux-arm64", "beos-x64", ""])
    def test_parse_rejects_unknown(self, key):
        with pytest.raises(ValueError):
            PlatformSignature.parse(key)

    def test_frozen(self):
        sig = PlatformSignature(OperatingSystem.LINUX, Architecture.X64)
        with pytest.raises(AttributeError):
            sig.os = OperatingSystem.MACOS


class TestDownloadChannel:
    """Tests for DownloadChannel construction and parsing."""

    def test_named_channels(self):
        assert DownloadChannel.stable().kind is ChannelKind.STABLE
        assert DownloadChannel.nightly().kind is ChannelKind.NIGHTLY
        assert DownloadChannel.nightly().tag is None

    def test_specific_tag(self):
        channel = DownloadChannel.specific("v0.3.1")
        assert channel.kind is ChannelKind.SPECIFIC_TAG
        assert channel.tag == "v0.3.1"
        assert str(channel) == "v0.3.1"

    def test_specific_tag_requires_tag(self):
        with pytest.raises(ValueError, match="non-empty tag"):
            DownloadChannel(ChannelKind.SPECIFIC_TAG)

    def test_named_channel_rejects_tag(self):
        with pytest.raises(ValueError, match="does not take a tag"):
            DownloadChannel(ChannelKind.NIGHTLY, "v1")

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("stable", DownloadChannel.stable()),
            ("NIGHTLY", DownloadChannel.nightly()),
            (" Nightly ", DownloadChannel.nightly()),
            ("v0.3.1", DownloadChannel.specific("v0.3.1")),
        ],
    )
    def test_parse(self, text, expected):
        assert DownloadChannel.parse(text) == expected

    def test_parse_empty(self):
        with pytest.raises(ValueError, match="must not be empty"):
            DownloadChannel.parse("   ")


class TestErrors:
    """Tests for the structured error hierarchy."""

    def test_all_errors_share_base(self):
        errors = [
            UnsupportedPlatformError("no"),
            DownloadFailedError("no", url="https://x", status_code=404),
            ExtractFailedError("no", install_dir="/tmp/x"),
            ProcessSpawnFailedError("no", executable="dotnet"),
            TransportError("no"),
        ]
        for error in errors:
            assert isinstance(error, FSharpClientError)
        assert [e.code for e in errors] == [
            ErrorCode.PLATFORM_UNSUPPORTED,
            ErrorCode.DOWNLOAD_FAILED,
            ErrorCode.EXTRACT_FAILED,
            ErrorCode.PROCESS_SPAWN_FAILED,
            ErrorCode.TRANSPORT_FAILED,
        ]

    def test_download_failed_carries_status(self):
        error = DownloadFailedError("bad", url="https://example.invalid/a.zip", status_code=404)
        assert error.status_code == 404
        assert error.network_error is None
        assert error.context.url == "https://example.invalid/a.zip"

    def test_download_failed_carries_network_error(self):
        cause = ConnectionRefusedError("refused")
        error = DownloadFailedError("bad", url="https://x", network_error=cause)
        assert error.status_code is None
        assert error.network_error is cause
        assert error.original_error is cause

    def test_formatted_message(self):
        error = UnsupportedPlatformError(
            "Unsupported platform",
            context=ErrorContext(operation="resolve_platform"),
        )
        text = error.get_formatted_message()
        assert text.startswith("[Error] This platform is not supported")
        assert "Code: 1001" in text
        assert "Operation: resolve_platform" in text
        assert "Suggested actions:" in text
        assert "FSHARP_CLIENT_CUSTOM_COMMAND" in text

    def test_to_dict(self):
        error = ExtractFailedError("corrupt", install_dir="/srv/fs", original_error=OSError("disk"))
        data = error.to_dict()
        assert data["name"] == "ExtractFailedError"
        assert data["code"] == 2002
        assert data["message"] == "corrupt"
        assert data["context"]["file_path"] == "/srv/fs"
        assert data["original_error"] == "disk"
        assert data["context"]["timestamp"].endswith("+00:00")
