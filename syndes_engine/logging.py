"""Syndes Engine — Logging.

Log records are structlog event dicts rendered either for a terminal or as
one JSON object per line.  Stdlib loggers (uvicorn, httpx) go through the
same renderer via ``ProcessorFormatter``.

The queue processor binds the session and command it is dispatching, so a
record written anywhere below ``dispatch()`` carries both without passing
them around::

    bind_command_context(session_id="script-2", command="cycle 3t 1s=echo hi")
    log.info("cycle_scheduled", times=3)
    # ... session_id=script-2 command='cycle 3t 1s=echo hi' times=3

Records go to stderr so the CLI can keep stdout for command output.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

# Long command lines (button prompts, inline scripts) are cut in log records.
MAX_COMMAND_CHARS = 160

_QUIET_LOGGERS = ("uvicorn.access", "httpx", "asyncio")

_session_var: ContextVar[str | None] = ContextVar("syndes_session_id", default=None)
_command_var: ContextVar[str | None] = ContextVar("syndes_command", default=None)


def bind_command_context(
    session_id: str | None = None,
    command: str | None = None,
) -> None:
    """Attach *session_id* / *command* to records from the current task."""
    if session_id is not None:
        _session_var.set(session_id)
    if command is not None:
        _command_var.set(command)


def clear_command_context() -> None:
    _session_var.set(None)
    _command_var.set(None)


def _add_command_context(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    session_id = _session_var.get()
    if session_id is not None:
        event_dict.setdefault("session_id", session_id)
    command = _command_var.get()
    if command is not None:
        event_dict.setdefault("command", command)
    return event_dict


def _shorten_command(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    command = event_dict.get("command")
    if isinstance(command, str) and len(command) > MAX_COMMAND_CHARS:
        event_dict["command"] = command[: MAX_COMMAND_CHARS - 3] + "..."
    return event_dict


def _strip_uvicorn_color(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    event_dict.pop("color_message", None)
    return event_dict


def _pick_renderer(format: str) -> Any:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | Path | None = None,
) -> None:
    """Install structlog and route the root logger through it.

    Args:
        level:    debug, info, warning, error or critical.
        format:   ``"console"`` or ``"json"``.
        log_file: Extra destination besides stderr, same format.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_command_context,
        _shorten_command,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _strip_uvicorn_color,
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _pick_renderer(format),
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level.upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
