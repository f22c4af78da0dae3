"""Host collaborator surfaces.

The runtime never talks to an editor directly; it consumes these small
surfaces (commands, status indicator, terminals) and ships one in-process
implementation of each so it can run from the command line.
"""

from dataclasses import dataclass, field

from .commands import CommandRegistry
from .events import Disposable, EventEmitter
from .status import LogStatusSurface, StatusIndicatorSurface, StatusItem
from .terminal import SubprocessTerminalSurface, Terminal, TerminalSurface


@dataclass
class Host:
    """Bundle of the surfaces an activation needs."""

    commands: CommandRegistry = field(default_factory=CommandRegistry)
    status: StatusIndicatorSurface = field(default_factory=LogStatusSurface)
    terminals: TerminalSurface = field(default_factory=SubprocessTerminalSurface)


__all__ = [
    "CommandRegistry",
    "Disposable",
    "EventEmitter",
    "Host",
    "LogStatusSurface",
    "StatusIndicatorSurface",
    "StatusItem",
    "SubprocessTerminalSurface",
    "Terminal",
    "TerminalSurface",
]
