"""Unit tests — Shell backend."""

from __future__ import annotations

import asyncio
import shlex
import sys
from pathlib import Path

import pytest

from syndes_engine.backends import ShellBackend
from syndes_engine.orchestration.executor import CommandContext
from syndes_engine.orchestration.interaction import InteractionGate

PYTHON = shlex.quote(sys.executable)


@pytest.fixture
def context(tmp_path: Path) -> CommandContext:
    return CommandContext(session_id="console", gate=InteractionGate(), working_dir=tmp_path)


def py(code: str) -> str:
    return f"sh {PYTHON} -c {shlex.quote(code)}"


@pytest.mark.unit
class TestShellBackend:
    async def test_stdout(self, context: CommandContext) -> None:
        assert await ShellBackend().execute(py("print('hi')"), context) == "hi"

    async def test_runs_in_working_dir(self, context: CommandContext, tmp_path: Path) -> None:
        result = await ShellBackend().execute(py("import os; print(os.getcwd())"), context)
        assert Path(result).resolve() == tmp_path.resolve()

    async def test_extra_env(self, context: CommandContext) -> None:
        backend = ShellBackend(env={"SYNDES_TEST_VALUE": "42"})
        code = "import os; print(os.environ['SYNDES_TEST_VALUE'])"
        assert await backend.execute(py(code), context) == "42"

    async def test_non_zero_exit(self, context: CommandContext) -> None:
        code = "import sys; sys.stderr.write('bad'); sys.exit(3)"
        assert await ShellBackend().execute(py(code), context) == "Error: exit status 3: bad"

    async def test_timeout(self, context: CommandContext) -> None:
        result = await ShellBackend(timeout=0.2).execute(py("import time; time.sleep(5)"), context)
        assert result.startswith("Error: command timed out after 0.2s")

    async def test_cancel_kills_process(self, context: CommandContext) -> None:
        task = asyncio.create_task(
            ShellBackend().execute(py("import time; time.sleep(5)"), context)
        )
        await asyncio.sleep(0.2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    async def test_usage(self, context: CommandContext) -> None:
        assert await ShellBackend().execute("sh", context) == "Error: sh usage: sh <command line>"

    def test_accepts_only_sh(self) -> None:
        assert ShellBackend().accepts("sh ls")
        assert not ShellBackend().accepts("shell ls")
