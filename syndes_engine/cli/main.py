"""Syndes CLI — Entry point.

Usage:
    syndes run "echo hi; cycle 3t 1s=date" [--for 5]
    syndes script validate <file>
    syndes script run <file> [--for 60]
    syndes server start
    syndes server status
    syndes version
"""

from __future__ import annotations

import typer
from rich.console import Console

from syndes_engine import __version__
from syndes_engine.cli.commands import queue, script, server

app = typer.Typer(
    name="syndes",
    help="Syndes — command queue and trigger-script engine.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()

app.command("run")(queue.run)
app.add_typer(script.app, name="script")
app.add_typer(server.app, name="server")


@app.command("version")
def version() -> None:
    """Print the engine version."""
    console.print(f"syndes-engine {__version__}")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
