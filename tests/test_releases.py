"""
Release table lookup and release-token substitution.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fsharp_client.constants import RELEASE_TOKEN
from fsharp_client.provisioning.releases import (
    LINUX_X64,
    MACOS_X64,
    SERVER_PACKAGES,
    WINDOWS_X64,
    ReleaseRepository,
    resolve_url,
)
from fsharp_client.types import (
    Architecture,
    DownloadChannel,
    OperatingSystem,
    PackageDescriptor,
    PlatformSignature,
    UnsupportedPlatformError,
)


class TestReleaseTable:
    """Tests for the built-in package table."""

    def test_supported_platforms(self):
        assert ReleaseRepository().supported_platforms == [LINUX_X64, MACOS_X64, WINDOWS_X64]

    def test_executable_names(self):
        assert SERVER_PACKAGES[WINDOWS_X64].executable_relative_path == "FSharpLanguageServer.exe"
        assert SERVER_PACKAGES[LINUX_X64].executable_relative_path == "FSharpLanguageServer"
        assert SERVER_PACKAGES[MACOS_X64].executable_relative_path == "FSharpLanguageServer"

    def test_every_template_has_token(self):
        for descriptor in SERVER_PACKAGES.values():
            assert RELEASE_TOKEN in descriptor.download_url_template

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            SERVER_PACKAGES[LINUX_X64] = PackageDescriptor("x", "y")


class TestDescribe:
    """Tests for ReleaseRepository.describe."""

    def test_nightly_linux(self):
        path, url = ReleaseRepository().describe(LINUX_X64, DownloadChannel.nightly())
        assert path == "FSharpLanguageServer"
        assert url == "https://github.com/yatli/coc-fsharp/releases/download/nightly/coc-fsharp-linux-x64.zip"

    def test_specific_tag_windows(self):
        path, url = ReleaseRepository().describe(WINDOWS_X64, DownloadChannel.specific("v0.3.1"))
        assert path == "FSharpLanguageServer.exe"
        assert url == "https://github.com/yatli/coc-fsharp/releases/download/v0.3.1/coc-fsharp-win10-x64.zip"

    def test_stable_leaves_template_untouched(self):
        _, url = ReleaseRepository().describe(MACOS_X64, DownloadChannel.stable())
        assert url == SERVER_PACKAGES[MACOS_X64].download_url_template

    def test_unsupported_platform(self):
        linux_x86 = PlatformSignature(OperatingSystem.LINUX, Architecture.X86)
        with pytest.raises(UnsupportedPlatformError, match="linux-x86"):
            ReleaseRepository().describe(linux_x86, DownloadChannel.nightly())

    def test_custom_table(self):
        repo = ReleaseRepository({LINUX_X64: PackageDescriptor("bin/server", "http://mirror/RELEASE/s.zip")})
        assert repo.describe(LINUX_X64, DownloadChannel.specific("r7")) == ("bin/server", "http://mirror/r7/s.zip")
        with pytest.raises(UnsupportedPlatformError):
            repo.descriptor(WINDOWS_X64)


class TestResolveUrl:
    """Tests for token substitution."""

    def test_replaces_every_occurrence(self):
        assert resolve_url("a/RELEASE/b-RELEASE", DownloadChannel.nightly()) == "a/nightly/b-nightly"

    @given(tag=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789.-", min_size=1, max_size=20))
    def test_token_never_survives_tagged_channel(self, tag):
        # tags drawn from lowercase text can never reintroduce the token
        url = resolve_url(SERVER_PACKAGES[LINUX_X64].download_url_template, DownloadChannel.specific(tag))
        assert RELEASE_TOKEN not in url
        assert f"/{tag}/" in url
