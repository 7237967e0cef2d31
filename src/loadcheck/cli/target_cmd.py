"""``loadcheck target``: serve the bundled test endpoint."""

from __future__ import annotations

import typer
from rich.console import Console

from loadcheck._internal.logging import setup_logging
from loadcheck.target import run_target

console = Console(stderr=True)


def target_cmd(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(7878, "--port", "-p", help="Port to listen on.", min=1, max=65535),
    status: int = typer.Option(200, "--status", help="Status code to answer with.", min=100, max=599),
    delay: float = typer.Option(0.0, "--delay", help="Seconds to wait before answering.", min=0.0),
) -> None:
    """Serve a minimal HTTP endpoint until interrupted."""
    setup_logging()
    console.print(f"[cyan]Serving[/cyan] http://{host}:{port}/ [dim](Ctrl+C to stop)[/dim]")
    run_target(host, port, status=status, delay=delay)
