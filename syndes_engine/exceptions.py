"""Syndes Engine — Exception hierarchy.

All exceptions raised by the engine inherit from SyndesError so that callers
can catch the full family with a single except clause when needed.  Most of
them never escape the engine: the queue processor and the trigger runtime
convert them into ``Error: ...`` result lines at the dispatch boundary.

Hierarchy:
    SyndesError
    ├── ParseError
    │   ├── CycleParseError
    │   ├── ConditionParseError
    │   └── ScriptParseError
    │       └── ScriptHeaderError
    ├── UnrecognizedConditionError
    ├── DispatchError
    ├── ResourceUnavailableError
    └── InteractionCancelledError
"""

from __future__ import annotations

from typing import Any


class SyndesError(Exception):
    """Base exception for all Syndes Engine errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class ParseError(SyndesError):
    """Base for malformed command or script syntax."""

    def __init__(self, message: str, text: str | None = None) -> None:
        super().__init__(message, context={"text": text})
        self.text = text


class CycleParseError(ParseError):
    """A ``cycle`` command could not be parsed."""


class ConditionParseError(ParseError):
    """An ``if <left> = <right> then <command>`` line could not be parsed."""


class ScriptParseError(ParseError):
    """A trigger script could not be parsed."""


class ScriptHeaderError(ScriptParseError):
    """The script header does not name any trigger runtime module."""


# ---------------------------------------------------------------------------
# Trigger matching
# ---------------------------------------------------------------------------


class UnrecognizedConditionError(SyndesError):
    """No trigger runtime recognised a condition line."""

    def __init__(self, condition: str) -> None:
        super().__init__(f"Unrecognized condition: {condition}", context={"condition": condition})
        self.condition = condition


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class DispatchError(SyndesError):
    """A command backend failed while executing a command."""

    def __init__(self, command: str, reason: str, backend: str | None = None) -> None:
        super().__init__(reason, context={"command": command, "backend": backend})
        self.command = command
        self.backend = backend


class ResourceUnavailableError(SyndesError):
    """A required resource (workspace, runtime module, session) is missing."""


class InteractionCancelledError(SyndesError):
    """A pending interactive wait was cancelled before a response arrived."""

    def __init__(self, request_id: str, reason: str = "stopped by user") -> None:
        super().__init__(
            f"interaction cancelled: {reason}",
            context={"request_id": request_id, "reason": reason},
        )
        self.request_id = request_id
        self.reason = reason
