"""CLI — Run command text through the queue."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from syndes_engine.cli.commands._runtime import build_engine, drive, load_settings


def run(
    text: Annotated[str, typer.Argument(help="Command text; use newlines or ';' to separate.")],
    linger: Annotated[
        float, typer.Option("--for", help="Seconds to keep cycles and watchdogs alive after the queue drains.")
    ] = 0.0,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    shell: bool = typer.Option(False, "--shell", help="Enable the 'sh' backend."),
) -> None:
    """Tokenize TEXT, run it and print every output line."""
    settings = load_settings(config, shell=shell)

    async def _main() -> None:
        engine = build_engine(settings)
        engine.enqueue(text)
        await drive(engine, linger)

    asyncio.run(_main())
