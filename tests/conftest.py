"""
Pytest configuration and shared fixtures for fsharp-client tests.
"""

from __future__ import annotations

import io
import sys
import urllib.error
import zipfile
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from fsharp_client.host.events import Disposable, EventEmitter

FIXTURES = Path(__file__).parent / "fixtures"
FAKE_SERVER = FIXTURES / "fake_server.py"


def fake_server_command(*flags: str) -> list[str]:
    """Command line that runs the scripted JSON-RPC server."""
    return [sys.executable, "-u", str(FAKE_SERVER), *flags]


def build_zip(entries: dict[str, bytes], modes: dict[str, int] | None = None) -> bytes:
    """Build an in-memory zip; ``modes`` sets unix permission bits per entry."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            info = zipfile.ZipInfo(name)
            mode = (modes or {}).get(name)
            if mode is not None:
                info.external_attr = (0o100000 | mode) << 16
            zf.writestr(info, data)
    return buffer.getvalue()


class FakeResponse(io.BytesIO):
    def __init__(self, body: bytes, status: int = 200) -> None:
        super().__init__(body)
        self.status = status

    def getcode(self) -> int:
        return self.status


class FakeUrlOpen:
    """Stand-in for ``urllib.request.urlopen`` that serves canned bodies."""

    def __init__(
        self,
        body: bytes = b"",
        status: int = 200,
        error: Exception | None = None,
    ) -> None:
        self.body = body
        self.status = status
        self.error = error
        self.calls: list[str] = []
        self.timeouts: list[float | None] = []

    def __call__(self, request, timeout=None):
        self.calls.append(request.full_url)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.body, self.status)


def http_error(url: str, code: int) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(url, code, "error", hdrs=None, fp=io.BytesIO(b""))


class RecordingStatusItem:
    """Status item that keeps every text it was given."""

    def __init__(self, progress: bool = False) -> None:
        self.progress = progress
        self.history: list[str] = []
        self.visible = False
        self.disposed = False
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        self._text = value
        self.history.append(value)

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def dispose(self) -> None:
        self.visible = False
        self.disposed = True


class RecordingStatusSurface:
    def __init__(self) -> None:
        self.items: list[RecordingStatusItem] = []

    def create_status_item(self, progress: bool = False) -> RecordingStatusItem:
        item = RecordingStatusItem(progress)
        self.items.append(item)
        return item


class FakeTerminal:
    def __init__(self, name: str, shell_path: str, shell_args: Sequence[str], cwd: str | None) -> None:
        self.name = name
        self.shell_path = shell_path
        self.shell_args = list(shell_args)
        self.cwd = cwd
        self.sent: list[str] = []
        self.shown: list[bool] = []
        self.disposed = False

    async def send_text(self, text: str, add_newline: bool = True) -> None:
        self.sent.append(text)

    def show(self, preserve_focus: bool = False) -> None:
        self.shown.append(preserve_focus)

    async def dispose(self) -> None:
        self.disposed = True


class FakeTerminalSurface:
    """Terminal surface whose terminals only record what happens to them."""

    def __init__(self) -> None:
        self.terminals: list[FakeTerminal] = []
        self._closed = EventEmitter[FakeTerminal]("onDidCloseTerminal")

    async def create_terminal(
        self,
        name: str,
        shell_path: str,
        shell_args: Sequence[str] = (),
        cwd: str | None = None,
    ) -> FakeTerminal:
        terminal = FakeTerminal(name, shell_path, shell_args, cwd)
        self.terminals.append(terminal)
        return terminal

    def on_did_close_terminal(self, listener: Callable[[FakeTerminal], None]) -> Disposable:
        return self._closed.event(listener)

    def close(self, terminal: FakeTerminal) -> None:
        """Simulate the user closing ``terminal`` (or its process exiting)."""
        self._closed.fire(terminal)

    @property
    def close_listener_count(self) -> int:
        return self._closed.listener_count


@pytest.fixture
def status_surface() -> RecordingStatusSurface:
    return RecordingStatusSurface()


@pytest.fixture
def terminal_surface() -> FakeTerminalSurface:
    return FakeTerminalSurface()


@pytest.fixture
def server_zip() -> bytes:
    """A linux-style server package with a non-executable binary entry."""
    return build_zip(
        {
            "FSharpLanguageServer": b"#!/bin/sh\nexit 0\n",
            "FSharpLanguageServer.dll": b"\x00dll",
            "lib/FSharp.Core.dll": b"\x00core",
        },
        modes={"FSharpLanguageServer": 0o644},
    )
