"""Command backends — concrete executors tried in priority order."""

from syndes_engine.backends.builtin import ClockBackend, EchoBackend
from syndes_engine.backends.shell import ShellBackend

__all__ = ["ClockBackend", "EchoBackend", "ShellBackend"]
