"""Built-in backends that need nothing from the host."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from syndes_engine.orchestration.executor import CommandBackend, CommandContext, command_name


class EchoBackend(CommandBackend):
    """``echo <text>`` returns its text (``echo`` alone is silent)."""

    name = "echo"

    def accepts(self, command: str) -> bool:
        return command_name(command) == "echo"

    async def execute(self, command: str, context: CommandContext) -> str | None:
        parts = command.strip().split(None, 1)
        if len(parts) < 2:
            return None
        return parts[1]


class ClockBackend(CommandBackend):
    name = "date"

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or datetime.now

    def accepts(self, command: str) -> bool:
        return command_name(command) == "date"

    async def execute(self, command: str, context: CommandContext) -> str | None:
        return self._clock().strftime("%Y-%m-%d %H:%M:%S")
