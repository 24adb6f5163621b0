"""Orchestration layer — Command executor.

The engine never knows how a command is carried out.  It hands the command
text to a ``BackendChain``: an ordered list of ``CommandBackend``s, tried in
priority order.  The first backend that accepts the command executes it and
its return value becomes the command's result:

    None        the command ran silently
    "Error..."  failure
    "Info..."   informational notice
    other       regular output

If no backend accepts the command the chain answers
``Error: command not found: <name>``.  A backend that raises is reported as a
``DispatchError``; the queue processor turns it into an error line.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from syndes_engine.exceptions import DispatchError, SyndesError
from syndes_engine.logging import get_logger
from syndes_engine.orchestration.interaction import InteractionGate

log = get_logger(__name__)


def command_name(command: str) -> str:
    parts = command.split(None, 1)
    return parts[0].lower() if parts else ""


@dataclass
class CommandContext:
    """Per-dispatch information handed to backends."""

    session_id: str
    gate: InteractionGate
    working_dir: Path | None = None

    async def wait_for_interaction(
        self, command: str, prompt: str, options: list[str] | None = None
    ) -> str:
        """Suspend until someone answers *prompt* through the interaction gate."""
        return await self.gate.request(command, prompt, options, session_id=self.session_id)


class CommandBackend(ABC):
    """One way of executing commands.

    Subclasses declare the commands they handle with ``accepts`` and run them
    in ``execute``.
    """

    name: str = "backend"

    @abstractmethod
    def accepts(self, command: str) -> bool:
        """Return True if this backend handles *command*."""

    @abstractmethod
    async def execute(self, command: str, context: CommandContext) -> str | None:
        """Run *command* and return its textual result."""

    def requires_interaction(self, command: str) -> bool:
        return False


class BackendChain:
    """Ordered backends; the first one accepting a command runs it."""

    def __init__(self, backends: Iterable[CommandBackend] = ()) -> None:
        self._backends: list[CommandBackend] = list(backends)

    @property
    def backends(self) -> list[CommandBackend]:
        return list(self._backends)

    def register(self, backend: CommandBackend, *, first: bool = False) -> None:
        if first:
            self._backends.insert(0, backend)
        else:
            self._backends.append(backend)

    def find(self, command: str) -> CommandBackend | None:
        for backend in self._backends:
            if backend.accepts(command):
                return backend
        return None

    def requires_interaction(self, command: str) -> bool:
        backend = self.find(command)
        return backend is not None and backend.requires_interaction(command)

    async def execute(self, command: str, context: CommandContext) -> str | None:
        backend = self.find(command)
        if backend is None:
            return f"Error: command not found: {command_name(command) or command}"
        try:
            return await backend.execute(command, context)
        except (asyncio.CancelledError, SyndesError):
            raise
        except Exception as exc:
            log.warning("backend_failed", backend=backend.name, error=str(exc))
            raise DispatchError(
                command, f"{backend.name} failed: {exc}", backend=backend.name
            ) from exc
