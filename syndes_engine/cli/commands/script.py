"""CLI — Trigger script commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from syndes_engine.cli.commands._runtime import build_engine, drive, load_settings
from syndes_engine.config import Settings
from syndes_engine.engine import Engine

app = typer.Typer(help="Validate and run trigger scripts.")
console = Console()

ScriptFile = Annotated[
    Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="Script file.")
]


@app.command("validate")
def validate(
    path: ScriptFile,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
) -> None:
    """Report unrecognized condition lines without running anything."""
    settings = Settings.load(config_file=config)
    report = Engine(settings).validate(path.read_text(encoding="utf-8"))
    ok = report.startswith("OK")
    console.print(report, style="green" if ok else "yellow", markup=False)
    if not ok:
        raise typer.Exit(code=1)


@app.command("run")
def run(
    path: ScriptFile,
    linger: Annotated[
        float, typer.Option("--for", help="Seconds to keep the session alive for scheduled actions.")
    ] = 0.0,
    work_dir: Annotated[
        Path | None, typer.Option("--work-dir", "-w", help="Root for 'exists' and 'size' triggers.")
    ] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    shell: bool = typer.Option(False, "--shell", help="Enable the 'sh' backend."),
) -> None:
    """Start a script session and print its log and output."""
    settings = load_settings(config, work_dir=work_dir, shell=shell)
    text = path.read_text(encoding="utf-8")

    async def _main() -> int:
        engine = build_engine(settings)
        session_id, lines = await engine.start_session(text)
        for line in lines:
            console.print(line, style="red" if line.startswith(("Error", "Module error")) else "cyan", markup=False)
        if session_id is None:
            return 1
        await drive(engine, linger)
        return 0

    code = asyncio.run(_main())
    if code:
        raise typer.Exit(code=code)
