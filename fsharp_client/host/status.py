"""Status-indicator surface.

A status item is a short text label that can be shown, updated, hidden and
released. ``LogStatusSurface`` renders items as log lines, which is what a
terminal-only host can offer.
"""

from __future__ import annotations

from typing import Protocol

from fsharp_client.utils.logger import logger


class StatusItem(Protocol):
    text: str

    def show(self) -> None: ...

    def hide(self) -> None: ...

    def dispose(self) -> None: ...


class StatusIndicatorSurface(Protocol):
    def create_status_item(self, progress: bool = False) -> StatusItem: ...


class LogStatusItem:
    """Status item that logs its text whenever it changes while visible."""

    def __init__(self, progress: bool = False) -> None:
        self.progress = progress
        self.visible = False
        self.disposed = False
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        changed = value != self._text
        self._text = value
        if changed and self.visible and not self.disposed:
            logger.info("[status] {}", value)

    def show(self) -> None:
        if self.disposed or self.visible:
            return
        self.visible = True
        if self._text:
            logger.info("[status] {}", self._text)

    def hide(self) -> None:
        self.visible = False

    def dispose(self) -> None:
        self.visible = False
        self.disposed = True


class LogStatusSurface:
    def create_status_item(self, progress: bool = False) -> LogStatusItem:
        return LogStatusItem(progress=progress)
