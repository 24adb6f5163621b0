"""Orchestration layer — if/else condition chain.

Grammar::

    if <left> = <right> then <command>
    else <command>

An ``if`` is true when ``<right>`` equals the last executed command or the
last result (both trimmed), or when ``<left>`` and ``<right>`` are the same
word ignoring case.  Consecutive ``if`` lines form one chain; a following
``else`` runs only if none of them fired.  Any other command processed in
between breaks the chain, so a later ``else`` is reported as orphaned.

A malformed ``if`` still opens the chain without firing it, so a following
``else`` runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Awaitable, Callable

from syndes_engine.exceptions import ConditionParseError
from syndes_engine.logging import get_logger
from syndes_engine.orchestration.history import ExecutionHistory

log = get_logger(__name__)

_IF_PATTERN = re.compile(r"^if\s+(.+?)\s*=\s*(.+?)\s+then\s+(.+)$", re.IGNORECASE)

IF_USAGE = "usage: if <left> = <right> then <command>"

Runner = Callable[[str], Awaitable["str | None"]]


@dataclass
class ConditionChainState:
    active: bool = False
    fired: bool = False

    def reset(self) -> None:
        self.active = False
        self.fired = False


@dataclass(frozen=True)
class IfClause:
    left: str
    right: str
    command: str


@dataclass(frozen=True)
class ConditionOutcome:
    """What the drain loop records after an if/else line.

    ``executed`` is True when a nested command ran (and already reported
    its own output line).
    """

    command: str
    result: str | None
    executed: bool = False


def parse_if(text: str) -> IfClause:
    match = _IF_PATTERN.match(text.strip())
    if match is None:
        raise ConditionParseError(f"if parse: {IF_USAGE}", text=text)
    left, right, command = (group.strip() for group in match.groups())
    return IfClause(left=left, right=right, command=command)


def keyword_of(text: str) -> str:
    parts = text.split(None, 1)
    return parts[0].lower() if parts else ""


class ConditionEvaluator:
    """State machine for the single active if/else chain of a queue."""

    def __init__(self, history: ExecutionHistory) -> None:
        self._history = history
        self.chain = ConditionChainState()

    @staticmethod
    def is_conditional(text: str) -> bool:
        return keyword_of(text) in ("if", "else")

    def break_chain(self) -> None:
        if self.chain.active:
            log.debug("condition_chain_broken", fired=self.chain.fired)
        self.chain.reset()

    def is_true(self, clause: IfClause) -> bool:
        last_command = (self._history.last_command or "").strip()
        last_result = (self._history.last_result or "").strip()
        return (
            clause.right == last_command
            or clause.right == last_result
            or clause.left.lower() == clause.right.lower()
        )

    async def evaluate(self, text: str, run: Runner) -> ConditionOutcome:
        if keyword_of(text) == "if":
            return await self.evaluate_if(text, run)
        return await self.evaluate_else(text, run)

    async def evaluate_if(self, text: str, run: Runner) -> ConditionOutcome:
        try:
            clause = parse_if(text)
        except ConditionParseError as exc:
            self.chain.active = True
            return ConditionOutcome(command=text, result=f"Error: {exc.message}")

        if not self.is_true(clause):
            self.chain.active = True
            log.debug("if_condition_false", left=clause.left, right=clause.right)
            return ConditionOutcome(command=text, result="Info: if skipped")

        log.debug("if_condition_true", command=clause.command)
        result = await run(clause.command)
        self.chain.active = True
        self.chain.fired = True
        return ConditionOutcome(command=clause.command, result=result, executed=True)

    async def evaluate_else(self, text: str, run: Runner) -> ConditionOutcome:
        command = text.strip()[len("else"):].strip()
        try:
            if not self.chain.active:
                return ConditionOutcome(
                    command=text, result="Error: else without preceding if-chain"
                )
            if self.chain.fired:
                return ConditionOutcome(
                    command=text, result="Info: else skipped because prior if fired"
                )
            if not command:
                return ConditionOutcome(
                    command=text, result="Error: else requires a command: else <command>"
                )
            result = await run(command)
            return ConditionOutcome(command=command, result=result, executed=True)
        finally:
            self.chain.reset()
