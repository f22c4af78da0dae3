"""
Interactive console lifecycle.
"""

import asyncio
import sys

import pytest

from fsharp_client.console.process import ConsoleProcessManager
from fsharp_client.host.terminal import SubprocessTerminalSurface
from fsharp_client.types import ProcessSpawnFailedError


@pytest.fixture
def manager(terminal_surface):
    return ConsoleProcessManager(terminal_surface)


class TestEnsureStarted:
    """Tests for ConsoleProcessManager.ensure_started."""

    async def test_starts_dotnet_fsi(self, manager, terminal_surface):
        handle = await manager.ensure_started()
        [terminal] = terminal_surface.terminals
        assert terminal.name == "F# REPL"
        assert terminal.shell_path == "dotnet"
        assert terminal.shell_args == ["fsi", "--readline+"]
        assert handle.terminal is terminal
        assert handle.is_live
        assert manager.current is handle

    async def test_single_instance(self, manager, terminal_surface):
        first = await manager.ensure_started()
        second = await manager.ensure_started()
        assert first is second
        assert len(terminal_surface.terminals) == 1
        assert first.terminal.shown == [True]

    async def test_concurrent_starts_share_one_console(self, manager, terminal_surface):
        first, second = await asyncio.gather(manager.ensure_started(), manager.ensure_started())
        assert first is second
        assert len(terminal_surface.terminals) == 1
        assert manager.current is first

    async def test_dispose_while_starting(self, manager, terminal_surface):
        task = asyncio.create_task(manager.ensure_started())
        await asyncio.sleep(0)
        await manager.dispose()
        handle = await task
        [terminal] = terminal_surface.terminals
        assert not handle.is_live
        assert terminal.disposed
        assert manager.current is None

        again = await manager.ensure_started()
        assert again.is_live
        assert manager.current is again

    async def test_restarts_after_close(self, manager, terminal_surface):
        first = await manager.ensure_started()
        terminal_surface.close(first.terminal)
        assert not first.is_live
        assert manager.current is None

        second = await manager.ensure_started()
        assert second is not first
        assert len(terminal_surface.terminals) == 2

    async def test_closing_other_terminal_is_ignored(self, manager, terminal_surface):
        handle = await manager.ensure_started()
        other = await terminal_surface.create_terminal("F# test", "dotnet", ["test"])
        terminal_surface.close(other)
        assert handle.is_live

    async def test_custom_command(self, terminal_surface):
        manager = ConsoleProcessManager(terminal_surface, command="fsharpi", args=["--nologo"])
        await manager.ensure_started("Interactive")
        [terminal] = terminal_surface.terminals
        assert (terminal.name, terminal.shell_path, terminal.shell_args) == ("Interactive", "fsharpi", ["--nologo"])


class TestExitSignal:
    """The exited signal fires exactly once per console."""

    async def test_close_fires_once(self, manager, terminal_surface):
        handle = await manager.ensure_started()
        fired = []
        handle.on_exited(lambda _: fired.append(True))
        terminal_surface.close(handle.terminal)
        terminal_surface.close(handle.terminal)
        await manager.dispose(handle)
        assert fired == [True]

    async def test_dispose_fires_once(self, manager, terminal_surface):
        handle = await manager.ensure_started()
        fired = []
        handle.on_exited(lambda _: fired.append(True))
        await manager.dispose(handle)
        # teardown closing the terminal must not raise the signal again
        terminal_surface.close(handle.terminal)
        await manager.dispose(handle)
        assert fired == [True]
        assert handle.terminal.disposed

    async def test_dispose_removes_close_observer(self, manager, terminal_surface):
        handle = await manager.ensure_started()
        assert terminal_surface.close_listener_count == 1
        await manager.dispose(handle)
        assert terminal_surface.close_listener_count == 0
        assert manager.current is None

    async def test_dispose_without_console(self, manager):
        await manager.dispose()
        assert manager.current is None


class TestEvaluation:
    """Tests for eval_line / eval_lines."""

    async def test_eval_line_appends_terminator(self, manager):
        handle = await manager.ensure_started()
        await manager.eval_line(handle, "let x = 1")
        assert handle.terminal.sent == ["let x = 1", ";;"]

    async def test_eval_lines_terminates_once(self, manager):
        handle = await manager.ensure_started()
        await manager.eval_lines(handle, ["let f x =", "    x + 1"])
        assert handle.terminal.sent == ["let f x =", "    x + 1", ";;"]

    async def test_eval_after_exit_is_dropped(self, manager, terminal_surface):
        handle = await manager.ensure_started()
        terminal_surface.close(handle.terminal)
        await manager.eval_line(handle, "1 + 1")
        assert handle.terminal.sent == []

    async def test_show(self, manager):
        manager.show()
        handle = await manager.ensure_started()
        manager.show(preserve_focus=False)
        assert handle.terminal.shown == [False]


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX-style child script")
class TestSubprocessTerminal:
    """Console backed by a real child process."""

    async def test_real_console_roundtrip(self, tmp_path):
        out = tmp_path / "received.txt"
        script = (
            "import sys\n"
            f"with open({str(out)!r}, 'w') as f:\n"
            "    for line in sys.stdin:\n"
            "        f.write(line)\n"
            "        f.flush()\n"
            "        if line.strip() == ';;':\n"
            "            break\n"
        )
        surface = SubprocessTerminalSurface()
        manager = ConsoleProcessManager(surface, command=sys.executable, args=["-c", script])
        handle = await manager.ensure_started()
        exited = asyncio.Event()
        handle.on_exited(lambda _: exited.set())

        await manager.eval_line(handle, 'printfn "hi"')
        await asyncio.wait_for(exited.wait(), 10)

        assert out.read_text() == 'printfn "hi"\n;;\n'
        assert not handle.is_live
        assert manager.current is None

    async def test_dispose_terminates_process(self):
        surface = SubprocessTerminalSurface()
        manager = ConsoleProcessManager(
            surface, command=sys.executable, args=["-c", "import time; time.sleep(60)"]
        )
        handle = await manager.ensure_started()
        await manager.dispose(handle)
        assert not handle.terminal.is_running

    async def test_concurrent_starts_spawn_one_process(self):
        surface = SubprocessTerminalSurface()
        manager = ConsoleProcessManager(
            surface, command=sys.executable, args=["-c", "import time; time.sleep(60)"]
        )
        first, second = await asyncio.gather(manager.ensure_started(), manager.ensure_started())
        try:
            assert first is second
            assert first.terminal.is_running
        finally:
            await manager.dispose()
        assert not first.terminal.is_running

    async def test_missing_command(self, tmp_path):
        manager = ConsoleProcessManager(SubprocessTerminalSurface(), command=str(tmp_path / "no-dotnet"))
        with pytest.raises(ProcessSpawnFailedError):
            await manager.ensure_started()
        assert manager.current is None
