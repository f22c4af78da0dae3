"""Client-side tracking of the server's project-checking progress.

The server pushes three custom notifications while it scans a project:
``fsharp/startProgress {title, nFiles}``, ``fsharp/incrementProgress fileName``
and ``fsharp/endProgress``. ``ProgressListener`` turns them into a status
indicator that reads e.g. ``Checking (50%)... [Program.fs]``.

Late or duplicated notifications are expected (the server can be restarted,
and teardown races with the notification stream), so anything arriving
without an active session is ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from fsharp_client.constants import END_PROGRESS, INCREMENT_PROGRESS, START_PROGRESS
from fsharp_client.host.events import Disposable
from fsharp_client.host.status import StatusIndicatorSurface, StatusItem

if TYPE_CHECKING:
    from fsharp_client.lsp.supervisor import ServerProcessHandle

log = logging.getLogger(__name__)

# Displayed percentage stays below 100 until the explicit end event.
MAX_RUNNING_PERCENT = 99


class ProgressState(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"


@dataclass
class ProgressSession:
    """One server-reported scan, from start event to end event."""

    title: str
    total_units: int
    indicator: StatusItem
    completed_units: int = 0

    @property
    def percent(self) -> int:
        """``floor(completed / (total + 1) * 100)``, capped below 100."""
        raw = self.completed_units * 100 // (self.total_units + 1)
        return min(raw, MAX_RUNNING_PERCENT)


class ProgressListener:
    """Idle / InProgress state machine driving one status indicator."""

    def __init__(self, status: StatusIndicatorSurface) -> None:
        self._status = status
        self._session: ProgressSession | None = None

    @property
    def state(self) -> ProgressState:
        return ProgressState.IDLE if self._session is None else ProgressState.IN_PROGRESS

    @property
    def session(self) -> ProgressSession | None:
        return self._session

    def start_progress(self, title: str, total_units: int) -> None:
        if self._session is not None:
            log.debug("Progress '%s' restarted before it ended", self._session.title)
            self.end_progress()
        indicator = self._status.create_status_item(progress=True)
        self._session = ProgressSession(title=title, total_units=max(0, total_units), indicator=indicator)
        indicator.text = f"{title} (0%)"
        indicator.show()

    def increment_progress(self, label: str) -> None:
        session = self._session
        if session is None:
            log.debug("Ignoring progress increment '%s' with no active session", label)
            return
        session.completed_units += 1
        session.indicator.text = f"{session.title} ({session.percent}%)... [{label}]"
        session.indicator.show()

    def end_progress(self) -> None:
        session, self._session = self._session, None
        if session is None:
            log.debug("Ignoring progress end with no active session")
            return
        session.completed_units = 0
        session.total_units = 0
        session.indicator.hide()
        session.indicator.dispose()

    def bind(self, handle: ServerProcessHandle) -> Disposable:
        """Subscribe to the server's progress notifications on ``handle``."""
        return Disposable.from_many(
            [
                handle.on_notification(START_PROGRESS, self._on_start),
                handle.on_notification(INCREMENT_PROGRESS, self._on_increment),
                handle.on_notification(END_PROGRESS, self._on_end),
            ]
        )

    def _on_start(self, params: Any) -> None:
        if not isinstance(params, dict):
            log.warning("Malformed %s payload: %r", START_PROGRESS, params)
            return
        try:
            total = int(params.get("nFiles", 0))
        except (TypeError, ValueError):
            total = 0
        self.start_progress(str(params.get("title", "")), total)

    def _on_increment(self, params: Any) -> None:
        # Servers send the file name bare, as a one-element list, or wrapped.
        if isinstance(params, list):
            params = params[0] if params else ""
        elif isinstance(params, dict):
            params = params.get("fileName", "")
        self.increment_progress("" if params is None else str(params))

    def _on_end(self, params: Any) -> None:
        self.end_progress()
