"""Orchestration layer — Control commands.

Commands the queue processor handles itself because they need access to
the queue, the registry or the interaction gate rather than to the host:

    sleep <dur>                          cancellable pause
    random {a - b - c}                   run one option chosen at random
    button (echo: Q? - Yes=cmd1 - No=cmd2)
                                         ask, then run the chosen command
    watchdog <dur> <command...>          re-inject <command> after <dur>
    cycle ...                            see ``cycles``

Nested commands (the ``random`` pick, the ``button`` choice) go through the
processor's single-command path, so they may themselves be control
commands or reach the backend chain.
"""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING

from syndes_engine.logging import get_logger
from syndes_engine.orchestration.executor import CommandContext, command_name
from syndes_engine.protocol.units import parse_duration_ms

if TYPE_CHECKING:
    from syndes_engine.orchestration.queue import QueueProcessor

log = get_logger(__name__)

RANDOM_USAGE = "Error: random usage: random {cmd1 - cmd2 - cmd3}"
BUTTON_USAGE = "Error: button usage: button (echo: Your question - Option1=cmd1 - Option2=cmd2)"


def parse_button(text: str) -> tuple[str, list[tuple[str, str]]] | None:
    """Split a ``button (...)`` command into its question and (label, command) pairs."""
    start = text.find("(")
    end = text.rfind(")")
    if start < 0 or end <= start:
        return None
    inside = text[start + 1 : end].strip()
    parts = [p.strip() for p in inside.split("-") if p.strip()]
    if not parts:
        return None
    question = parts[0]
    if question.lower().startswith("echo:"):
        question = question.split(":", 1)[1].strip()
    options: list[tuple[str, str]] = []
    for part in parts[1:]:
        label, sep, cmd = part.partition("=")
        if not sep:
            options.append((part, part))
        elif label.strip() and cmd.strip():
            options.append((label.strip(), cmd.strip()))
    return question, options


class ControlCommands:
    """Dispatcher for the built-in control commands."""

    NAMES = frozenset({"sleep", "random", "button", "watchdog", "cycle"})
    INTERACTIVE = frozenset({"button"})

    def __init__(self, processor: "QueueProcessor", rng: random.Random | None = None) -> None:
        self._processor = processor
        self._rng = rng or random.Random()

    def accepts(self, command: str) -> bool:
        return command_name(command) in self.NAMES

    def requires_interaction(self, command: str) -> bool:
        return command_name(command) in self.INTERACTIVE

    async def execute(self, command: str, context: CommandContext) -> str | None:
        name = command_name(command)
        if name == "cycle":
            return self._processor.cycles.schedule(command, context.session_id)
        handler = getattr(self, f"_cmd_{name}")
        return await handler(command, context)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _cmd_sleep(self, command: str, context: CommandContext) -> str:
        parts = command.split()
        if len(parts) < 2:
            return "Error: sleep usage: sleep <duration> (e.g. 5s, 200ms, 2m)"
        token = parts[1]
        millis = parse_duration_ms(token)
        if millis <= 0:
            return f"Error: invalid duration '{token}'"
        await asyncio.sleep(millis / 1000)
        return f"Info: slept {token}"

    async def _cmd_random(self, command: str, context: CommandContext) -> str | None:
        start = command.find("{")
        end = command.find("}", start + 1)
        if start < 0 or end < 0 or not command[start + 1 : end].strip():
            return RANDOM_USAGE
        options = [o.strip() for o in command[start + 1 : end].split("-") if o.strip()]
        if not options:
            return "Error: random: no options found inside {}"
        chosen = self._rng.choice(options)
        log.info("random_chosen", chosen=chosen, options=len(options))
        await self._processor.announce(command, f"Info: random chose: {chosen}", context.session_id)
        return await self._processor.dispatch(chosen, context)

    async def _cmd_button(self, command: str, context: CommandContext) -> str | None:
        parsed = parse_button(command)
        if parsed is None:
            return BUTTON_USAGE
        question, options = parsed
        if not options:
            return "Error: button: no options provided (use Option=cmd)"
        labels = [label for label, _ in options]
        answer = await context.wait_for_interaction(command, question, labels)
        chosen = _match_option(answer, options)
        if chosen is None:
            return f"Error: button: unknown choice '{answer}'"
        await self._processor.announce(command, f"Info: button chose: {chosen}", context.session_id)
        return await self._processor.dispatch(chosen, context)

    async def _cmd_watchdog(self, command: str, context: CommandContext) -> str:
        parts = command.split(None, 2)
        if len(parts) < 3:
            return "Error: invalid watchdog syntax: watchdog <duration> <command...>"
        millis = parse_duration_ms(parts[1])
        if millis <= 0:
            return f"Error: invalid duration '{parts[1]}'"
        target = parts[2].strip()
        handle = self._processor.registry.spawn(
            context.session_id,
            self._fire_later(millis / 1000, target, context.session_id),
            f"watchdog {parts[1]} {target}",
            prefix="wd",
        )
        log.info("watchdog_scheduled", handle_id=handle.handle_id, delay_ms=millis, target=target)
        return f"Info: watchdog scheduled: '{target}' in {parts[1]}"

    async def _fire_later(self, delay: float, target: str, session_id: str) -> None:
        await asyncio.sleep(delay)
        self._processor.inject(target, session_id)


def _match_option(answer: str, options: list[tuple[str, str]]) -> str | None:
    wanted = answer.strip()
    for label, cmd in options:
        if label.lower() == wanted.lower():
            return cmd
    if wanted.isdigit() and 1 <= int(wanted) <= len(options):
        return options[int(wanted) - 1][1]
    return None
