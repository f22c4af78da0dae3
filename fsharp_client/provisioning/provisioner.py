"""Binary provisioning: make the language server executable present and runnable.

Installation state is not recorded anywhere: the executable existing at its
expected path *is* the installed state. Anything else in the install
directory is treated as a stale or partial install and wiped before a fresh
download.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import tempfile
import urllib.request
from collections.abc import AsyncIterator
from pathlib import Path

from fsharp_client.constants import DEFAULT_DOWNLOAD_TIMEOUT
from fsharp_client.host.status import StatusIndicatorSurface
from fsharp_client.provisioning.download import UrlOpen, download_archive, extract_archive
from fsharp_client.provisioning.releases import ReleaseRepository
from fsharp_client.types.core import DownloadChannel, PlatformSignature
from fsharp_client.types.errors import DownloadFailedError, ExtractFailedError
from fsharp_client.utils.logger import logger

EXECUTABLE_MODE = 0o755


class BinaryProvisioner:
    """Downloads and installs the server package for one platform.

    Concurrent callers inside this process are serialized per install
    directory. Separate processes sharing a directory are not coordinated.
    """

    def __init__(
        self,
        repository: ReleaseRepository | None = None,
        download_timeout: float | None = DEFAULT_DOWNLOAD_TIMEOUT,
        urlopen_fn: UrlOpen = urllib.request.urlopen,
        status: StatusIndicatorSurface | None = None,
    ) -> None:
        self._repository = repository or ReleaseRepository()
        self._download_timeout = download_timeout
        self._urlopen_fn = urlopen_fn
        self._status = status
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def repository(self) -> ReleaseRepository:
        return self._repository

    def executable_path(self, signature: PlatformSignature, install_dir: str | os.PathLike) -> Path:
        descriptor = self._repository.descriptor(signature)
        return Path(install_dir) / descriptor.executable_relative_path

    def is_installed(self, signature: PlatformSignature, install_dir: str | os.PathLike) -> bool:
        return self.executable_path(signature, install_dir).exists()

    async def ensure_installed(
        self,
        signature: PlatformSignature,
        channel: DownloadChannel,
        install_dir: str | os.PathLike,
    ) -> Path:
        """Return the server executable path, installing it first if absent.

        :raises UnsupportedPlatformError: no package for ``signature``
        :raises DownloadFailedError: HTTP status outside 2xx or network failure
        :raises ExtractFailedError: the archive could not be unpacked
        """
        relative_path, url = self._repository.describe(signature, channel)
        install_dir = Path(install_dir)
        executable = install_dir / relative_path
        if executable.exists():
            logger.debug("Language server already installed at {}", executable)
            return executable

        async with self._install_lock(install_dir):
            if executable.exists():
                return executable
            item = self._status.create_status_item(progress=True) if self._status else None
            if item is not None:
                item.text = "Downloading F# Language Server"
                item.show()
            try:
                await asyncio.to_thread(
                    self._install, url, install_dir, executable, not signature.is_windows
                )
            finally:
                if item is not None:
                    item.hide()
                    item.dispose()
        logger.info("Installed F# language server ({}, {}) at {}", signature, channel, executable)
        return executable

    @contextlib.asynccontextmanager
    async def _install_lock(self, install_dir: Path) -> AsyncIterator[None]:
        """Hold the lock for ``install_dir``; it is dropped once no caller uses it."""
        key = os.path.realpath(install_dir)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def _install(self, url: str, install_dir: Path, executable: Path, make_executable: bool) -> None:
        install_dir.parent.mkdir(parents=True, exist_ok=True)
        if install_dir.exists():
            logger.info("Removing stale install directory {}", install_dir)
            shutil.rmtree(install_dir)
        install_dir.mkdir()

        fd, archive_name = tempfile.mkstemp(prefix=".download-", suffix=".zip", dir=install_dir)
        os.close(fd)
        archive = Path(archive_name)
        try:
            download_archive(url, archive, timeout=self._download_timeout, urlopen_fn=self._urlopen_fn)
        except DownloadFailedError:
            archive.unlink(missing_ok=True)
            raise
        extract_archive(archive, install_dir)
        archive.unlink()

        if not executable.is_file():
            raise ExtractFailedError(
                f"Archive from {url} does not contain {executable.relative_to(install_dir)}",
                install_dir=str(install_dir),
            )
        if make_executable:
            executable.chmod(EXECUTABLE_MODE)
