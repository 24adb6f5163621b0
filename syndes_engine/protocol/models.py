"""Protocol layer — Command items and execution records.

A raw command line is turned into an ordered list of ``CommandItem``s:

    SingleCommand   one command, optionally backgrounded (``cmd &``) or
                    followed by ``&&``
    ParallelGroup   ``parallel: a; b; c`` — members run concurrently and the
                    group completes only when all of them finish

Both are frozen: the text of an item never changes once the tokenizer has
produced it.

Results are plain strings.  Their meaning is carried by a prefix:
``Error...`` for failures, ``Info...`` for informational notices, anything
else is regular output.  ``None`` means the command produced no output.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class SingleCommand:
    text: str
    conditional_next: bool = False
    background: bool = False

    @classmethod
    def from_token(cls, token: str, conditional_next: bool = False) -> "SingleCommand":
        """Build from a raw token, stripping a trailing background marker once."""
        text = token.strip()
        if text.endswith(" &"):
            return cls(text[:-1].rstrip(), conditional_next=conditional_next, background=True)
        return cls(text, conditional_next=conditional_next)


@dataclass(frozen=True)
class ParallelGroup:
    commands: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.commands)


CommandItem = Union[SingleCommand, ParallelGroup]


class ResultKind(str, Enum):
    ERROR = "error"
    INFO = "info"
    PLAIN = "plain"


def classify_result(result: str | None) -> ResultKind | None:
    """Classify a result string by its prefix.  ``None`` stays ``None``."""
    if result is None:
        return None
    lowered = result.lstrip().lower()
    if lowered.startswith("error"):
        return ResultKind.ERROR
    if lowered.startswith("info"):
        return ResultKind.INFO
    return ResultKind.PLAIN


@dataclass
class ExecutionRecord:
    """Last executed command and its result, read by ``if`` conditions."""

    last_command: str | None = None
    last_result: str | None = None
