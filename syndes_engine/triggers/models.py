"""Trigger scripts — data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class TriggerBlock:
    """One body block of a script: a condition line and its actions.

    A bare line is a block whose condition is the command itself and whose
    action list is empty.
    """

    condition: str
    actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class TriggerMatch:
    """A condition line recognised by a runtime."""

    kind: str
    groups: tuple[str, ...]
    line: str = ""


@dataclass(frozen=True)
class Executed:
    """Condition held: the actions run right away."""

    info: str
    actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class Scheduled:
    """Actions will run after a delay, as a handle of the session."""

    info: str
    delay_ms: int
    run_at: datetime
    handle_id: str | None = None
    actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class TriggerError:
    message: str


TriggerResult = Union[Executed, Scheduled, TriggerError]


@dataclass
class ParsedScript:
    header: dict[str, str] = field(default_factory=dict)
    modules: list[str] = field(default_factory=list)
    blocks: list[TriggerBlock] = field(default_factory=list)
