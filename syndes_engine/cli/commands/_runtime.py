"""CLI — Shared helpers for running an engine in the foreground."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.prompt import Prompt

from syndes_engine.config import Settings
from syndes_engine.engine import Engine
from syndes_engine.events.bus import TOPIC_OUTPUT, MemoryEventBus
from syndes_engine.logging import configure_logging
from syndes_engine.orchestration.interaction import InteractionGate

console = Console()

_STYLES = {"error": "bold red", "info": "cyan", "plain": "white"}


def load_settings(config: Path | None, work_dir: Path | None = None, shell: bool = False) -> Settings:
    settings = Settings.load(config_file=config)
    if work_dir is not None:
        settings.workspace.work_dir = work_dir.expanduser()
    if shell:
        settings.backends.shell_enabled = True
    configure_logging(level=settings.logging.level, format=settings.logging.format)
    return settings


def print_output(event: dict[str, Any]) -> None:
    style = _STYLES.get(event.get("kind", "plain"), "white")
    console.print(event["result"], style=style, markup=False, highlight=False)


def build_engine(settings: Settings) -> Engine:
    bus = MemoryEventBus()
    bus.add_listener(print_output, topics=[TOPIC_OUTPUT])
    return Engine(settings, event_bus=bus)


async def answer_interactions(gate: InteractionGate) -> None:
    """Prompt on the terminal for every interaction the gate raises."""
    requests = gate.listen()
    try:
        while True:
            request = await requests.get()
            answer = await asyncio.to_thread(
                Prompt.ask,
                f"[yellow]{request.prompt}[/yellow]",
                choices=request.options or None,
            )
            gate.complete(request.request_id, answer)
    finally:
        gate.unlisten(requests)


async def drive(engine: Engine, linger: float) -> None:
    """Run until the queue is idle, then keep scheduled work alive for *linger* seconds."""
    prompter = asyncio.create_task(answer_interactions(engine.gate))
    try:
        await engine.wait_idle()
        if linger > 0:
            await asyncio.sleep(linger)
            await engine.wait_idle()
    finally:
        report = await engine.stop_queue()
        prompter.cancel()
        await asyncio.gather(prompter, return_exceptions=True)
        if report.handles_cancelled or report.background_cancelled:
            console.print(report.summary(), style="cyan")
