import asyncio
import platform
import shlex
import subprocess


def subprocess_kwargs(hide_window: bool = True) -> dict:
    """
    Returns a dictionary of keyword arguments for subprocess calls, adding platform-specific
    flags that we want to use consistently. Background servers get no console window on
    Windows; interactive terminals pass ``hide_window=False``.
    """
    kwargs = {}
    if hide_window and platform.system() == "Windows":
        kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW  # type: ignore
    return kwargs


def quote_arg(arg: str) -> str:
    """Safely quote a single argument for shell command strings."""
    return shlex.quote(arg)


def render_command(command: str, args: list[str] | tuple[str, ...]) -> str:
    """Shell-style rendering of a command line, for logs and messages."""
    return " ".join(quote_arg(part) for part in (command, *args))


async def terminate_process(process: asyncio.subprocess.Process, timeout: float = 5.0) -> int | None:
    """
    Terminate ``process`` and wait for it, escalating to kill after ``timeout`` seconds.
    Returns the exit code, or None if it could not be reaped.
    """
    if process.returncode is not None:
        return process.returncode
    try:
        process.terminate()
    except ProcessLookupError:
        pass
    try:
        return await asyncio.wait_for(process.wait(), timeout)
    except asyncio.TimeoutError:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    try:
        return await asyncio.wait_for(process.wait(), timeout)
    except asyncio.TimeoutError:
        return None
