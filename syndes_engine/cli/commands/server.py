"""CLI — HTTP server commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="Start and inspect the Syndes HTTP server.")
console = Console()


@app.command("start")
def start(
    host: Annotated[str | None, typer.Option(help="Host to bind to.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: str = typer.Option("info", help="Log level."),
) -> None:
    """Start the HTTP server."""
    from syndes_engine.api.server import create_app
    from syndes_engine.config import Settings

    settings = Settings.load(config_file=config)
    if host:
        settings.server.host = host
    if port:
        settings.server.port = port

    console.print(
        f"[bold green]Starting Syndes on {settings.server.host}:{settings.server.port}[/bold green]"
    )
    uvicorn.run(
        create_app(settings=settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=log_level,
    )


@app.command("status")
def status(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(40100),
) -> None:
    """Query a running server's health endpoint."""
    import httpx

    try:
        resp = httpx.get(f"http://{host}:{port}/health", timeout=5.0)
        data = resp.json()
    except httpx.HTTPError as exc:
        console.print(f"[red]Server not reachable at {host}:{port}: {exc}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Syndes Status")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, str(value))
    console.print(table)
