"""Unit tests — Backend chain."""

from __future__ import annotations

import pytest

from syndes_engine.exceptions import DispatchError, ResourceUnavailableError
from syndes_engine.orchestration.executor import (
    BackendChain,
    CommandBackend,
    CommandContext,
    command_name,
)
from syndes_engine.orchestration.interaction import InteractionGate


class _Named(CommandBackend):
    def __init__(self, name: str, prefix: str, interactive: bool = False) -> None:
        self.name = name
        self._prefix = prefix
        self._interactive = interactive

    def accepts(self, command: str) -> bool:
        return command_name(command) == self._prefix

    async def execute(self, command: str, context: CommandContext) -> str | None:
        return f"{self.name}:{command}"

    def requires_interaction(self, command: str) -> bool:
        return self._interactive


class _Raising(CommandBackend):
    name = "raising"

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def accepts(self, command: str) -> bool:
        return True

    async def execute(self, command: str, context: CommandContext) -> str | None:
        raise self._exc


@pytest.fixture
def context() -> CommandContext:
    return CommandContext(session_id="console", gate=InteractionGate())


@pytest.mark.unit
class TestBackendChain:
    async def test_first_accepting_backend_wins(self, context: CommandContext) -> None:
        chain = BackendChain([_Named("one", "run"), _Named("two", "run")])
        assert await chain.execute("run x", context) == "one:run x"

    async def test_register_first_takes_priority(self, context: CommandContext) -> None:
        chain = BackendChain([_Named("one", "run")])
        chain.register(_Named("zero", "run"), first=True)
        assert await chain.execute("run x", context) == "zero:run x"
        assert [b.name for b in chain.backends] == ["zero", "one"]

    async def test_unknown_command(self, context: CommandContext) -> None:
        chain = BackendChain([_Named("one", "run")])
        assert await chain.execute("Deploy now", context) == "Error: command not found: deploy"

    async def test_backend_exception_becomes_dispatch_error(
        self, context: CommandContext
    ) -> None:
        chain = BackendChain([_Raising(ValueError("bad input"))])
        with pytest.raises(DispatchError) as exc_info:
            await chain.execute("anything", context)
        assert exc_info.value.message == "raising failed: bad input"
        assert exc_info.value.backend == "raising"

    async def test_engine_errors_propagate_unchanged(self, context: CommandContext) -> None:
        chain = BackendChain([_Raising(ResourceUnavailableError("gone"))])
        with pytest.raises(ResourceUnavailableError):
            await chain.execute("anything", context)

    def test_requires_interaction(self) -> None:
        chain = BackendChain([_Named("ask", "ask", interactive=True), _Named("run", "run")])
        assert chain.requires_interaction("ask me")
        assert not chain.requires_interaction("run x")
        assert not chain.requires_interaction("missing")


@pytest.mark.unit
class TestCommandName:
    def test_lowercases_first_word(self) -> None:
        assert command_name("  ECHO hi") == "echo"

    def test_empty(self) -> None:
        assert command_name("   ") == ""
