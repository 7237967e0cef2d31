"""Main Typer application, entry point of the ``loadcheck`` CLI."""

from __future__ import annotations

import typer

from loadcheck import __version__
from loadcheck.cli.init_cmd import init_cmd
from loadcheck.cli.run import run_cmd
from loadcheck.cli.target_cmd import target_cmd

app = typer.Typer(
    name="loadcheck",
    help="Drive HTTP load with virtual users and check every response.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a scenario, or GET one URL, for a fixed duration.")(run_cmd)
app.command("init", help="Scaffold a new scenario file.")(init_cmd)
app.command("target", help="Serve a minimal HTTP endpoint to test against.")(target_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"loadcheck {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """loadcheck: HTTP load driver with response checks."""
