"""Protocol layer — command items, tokenizer and unit parsing."""

from syndes_engine.protocol.models import (
    CommandItem,
    ExecutionRecord,
    ParallelGroup,
    ResultKind,
    SingleCommand,
    classify_result,
)
from syndes_engine.protocol.parser import CommandParser

__all__ = [
    "CommandItem",
    "CommandParser",
    "ExecutionRecord",
    "ParallelGroup",
    "ResultKind",
    "SingleCommand",
    "classify_result",
]
