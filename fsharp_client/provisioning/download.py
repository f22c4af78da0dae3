"""Blocking download and unpack helpers.

Both functions do plain blocking I/O; the provisioner runs them through
``asyncio.to_thread`` so the event loop stays responsive.
"""

from __future__ import annotations

import os
import shutil
import urllib.error
import urllib.request
import zipfile
from collections.abc import Callable
from pathlib import Path

from fsharp_client.types.errors import DownloadFailedError, ExtractFailedError
from fsharp_client.utils.logger import logger

_CHUNK_SIZE = 1024 * 64

UrlOpen = Callable[..., object]


def download_archive(
    url: str,
    destination: Path,
    timeout: float | None = None,
    urlopen_fn: UrlOpen = urllib.request.urlopen,
) -> int:
    """Stream ``url`` into ``destination`` and return the number of bytes written.

    Redirects are followed by ``urlopen``. Any status outside 2xx and any
    connection-level failure raise ``DownloadFailedError``.
    """
    request = urllib.request.Request(url, headers={"User-Agent": "fsharp-client"})
    logger.info("Downloading {}", url)
    try:
        with urlopen_fn(request, timeout=timeout) as response:
            status = getattr(response, "status", None) or response.getcode()
            if not 200 <= status < 300:
                raise DownloadFailedError(
                    f"Invalid response from {url}: {status}",
                    url=url,
                    status_code=status,
                )
            written = 0
            with destination.open("wb") as sink:
                while chunk := response.read(_CHUNK_SIZE):
                    sink.write(chunk)
                    written += len(chunk)
    except urllib.error.HTTPError as exc:
        raise DownloadFailedError(
            f"Invalid response from {url}: {exc.code}",
            url=url,
            status_code=exc.code,
        ) from exc
    except (urllib.error.URLError, OSError) as exc:
        raise DownloadFailedError(
            f"Failed to download {url}: {exc}",
            url=url,
            network_error=exc,
        ) from exc
    logger.debug("Downloaded {} bytes to {}", written, destination)
    return written


def _member_target(root: str, member: str) -> str:
    """Resolve an archive member under ``root``, rejecting entries that escape it."""
    target = os.path.realpath(os.path.join(root, member))
    if not (target == root or target.startswith(root + os.sep)):
        raise ValueError(f"Archive entry escapes install directory: '{member}'")
    return target


def extract_archive(archive: Path, target_dir: Path) -> list[str]:
    """Unpack a zip archive into ``target_dir`` and return the member names.

    :raises ExtractFailedError: on a corrupt archive, unsafe member paths or I/O errors
    """
    root = os.path.realpath(target_dir)
    try:
        with zipfile.ZipFile(archive) as zf:
            names = zf.namelist()
            for info in zf.infolist():
                target = _member_target(root, info.filename)
                if info.is_dir():
                    os.makedirs(target, exist_ok=True)
                    continue
                os.makedirs(os.path.dirname(target), exist_ok=True)
                with zf.open(info) as source, open(target, "wb") as sink:
                    shutil.copyfileobj(source, sink)
                # Keep unix permission bits when the archive recorded them.
                mode = (info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(target, mode)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as exc:
        raise ExtractFailedError(
            f"Failed to extract {archive} into {target_dir}: {exc}",
            install_dir=str(target_dir),
            original_error=exc,
        ) from exc
    logger.debug("Extracted {} entries into {}", len(names), target_dir)
    return names
