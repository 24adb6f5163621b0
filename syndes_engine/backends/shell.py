"""Shell backend — ``sh <cmdline>`` runs a host command.

Disabled unless ``backends.shell_enabled`` is set.  Output is stdout (or
stderr when stdout is empty); a non-zero exit status becomes an error
result.
"""

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path

from syndes_engine.logging import get_logger
from syndes_engine.orchestration.executor import CommandBackend, CommandContext, command_name

log = get_logger(__name__)


class ShellBackend(CommandBackend):
    name = "shell"

    def __init__(self, timeout: float = 60.0, env: dict[str, str] | None = None) -> None:
        self._timeout = timeout
        self._env = env

    def accepts(self, command: str) -> bool:
        return command_name(command) == "sh"

    async def execute(self, command: str, context: CommandContext) -> str | None:
        parts = command.strip().split(None, 1)
        if len(parts) < 2:
            return "Error: sh usage: sh <command line>"
        argv = shlex.split(parts[1])

        env = os.environ.copy()
        if self._env:
            env.update(self._env)
        cwd: Path | None = context.working_dir

        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=env,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.communicate()
            return f"Error: command timed out after {self._timeout}s: {parts[1]}"
        except asyncio.CancelledError:
            proc.kill()
            await proc.wait()
            raise

        stdout = stdout_bytes.decode(errors="replace").rstrip() if stdout_bytes else ""
        stderr = stderr_bytes.decode(errors="replace").rstrip() if stderr_bytes else ""
        log.debug("shell_finished", argv=argv, return_code=proc.returncode)
        if proc.returncode != 0:
            return f"Error: exit status {proc.returncode}: {stderr or stdout}".rstrip(": ")
        return stdout or stderr or None
