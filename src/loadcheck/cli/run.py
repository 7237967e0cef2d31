"""``loadcheck run``: execute a scenario with live terminal output."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from loadcheck._internal.config import format_duration, load_settings, parse_think_time
from loadcheck._internal.errors import LoadCheckError
from loadcheck.dsl.builtin import http_get_scenario
from loadcheck.dsl.loader import load_scenario
from loadcheck.engine.runner import LoadTestRunner

if TYPE_CHECKING:
    from loadcheck.metrics.models import MetricSnapshot, RunResult

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Rich tables
# ---------------------------------------------------------------------------


def _make_live_table(snapshot: MetricSnapshot | None) -> Table:
    """Build the table shown while the run is in progress."""
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Last interval", justify="right")

    if snapshot is None:
        table.add_row("Status", "Starting...")
        return table

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Active VUs", str(snapshot.active_users))
    table.add_row("Iterations/sec", f"{snapshot.iterations_per_second:.1f}")
    table.add_row("Requests/sec", f"{snapshot.requests_per_second:.1f}")
    table.add_row("p95 Latency", f"{snapshot.latency_p95:.1f}ms")
    table.add_row("Checks passed", str(snapshot.check_passes))
    table.add_row("Checks failed", str(snapshot.check_fails))
    table.add_row("Transport errors", str(snapshot.transport_errors))
    return table


def _print_summary(result: RunResult) -> None:
    """Print iterations, checks, errors and latency after the run."""
    summary = result.final_summary
    table = Table(title="Run Complete", show_header=True, header_style="bold green", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Scenario", result.scenario_name)
    table.add_row("Configuration", result.config.describe())
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")

    if summary is not None:
        table.add_row("Iterations", str(summary.iterations))
        table.add_row("Iterations/sec", f"{summary.iterations_per_second:.1f}")
        table.add_row("Failed iterations", str(summary.failed_iterations))
        table.add_row("Interrupted iterations", str(result.interrupted_iterations))
        table.add_row("Transport errors", str(summary.transport_errors))
        table.add_row("Script errors", str(summary.script_errors))
        table.add_row("Requests", str(summary.total_requests))
        table.add_row("Avg latency", f"{summary.latency_avg:.1f}ms")
        table.add_row("p50 Latency", f"{summary.latency_p50:.1f}ms")
        table.add_row("p95 Latency", f"{summary.latency_p95:.1f}ms")
        table.add_row("p99 Latency", f"{summary.latency_p99:.1f}ms")
        table.add_row("Max latency", f"{summary.latency_max:.1f}ms")

        if summary.checks:
            check_table = Table(title="Checks", show_header=True, header_style="bold cyan", expand=True)
            check_table.add_column("Check")
            check_table.add_column("Passed", justify="right")
            check_table.add_column("Failed", justify="right")
            check_table.add_column("Pass rate", justify="right")
            for check in summary.checks.values():
                style = "green" if check.fails == 0 else "red"
                check_table.add_row(
                    f"[{style}]{check.name}[/{style}]",
                    str(check.passes),
                    str(check.fails),
                    f"{check.pass_rate * 100:.2f}%",
                )
            console.print(check_table)

        if summary.errors_by_type:
            error_table = Table(title="Errors", show_header=True, header_style="bold red", expand=True)
            error_table.add_column("Error")
            error_table.add_column("Count", justify="right")
            for error_type, count in sorted(summary.errors_by_type.items()):
                error_table.add_row(error_type, str(count))
            console.print(error_table)

    console.print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    scenario_file: Path | None = typer.Argument(
        None,
        help="Scenario .py file. Omit to GET --url and check the status.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    url: str | None = typer.Option(
        None,
        "--url",
        help="URL for the built-in scenario (default: $LOADCHECK_URL or http://localhost:7878/).",
    ),
    expect_status: int = typer.Option(
        200,
        "--expect-status",
        help="Status code the built-in scenario's check expects.",
    ),
    scenario_name: str | None = typer.Option(
        None,
        "--scenario",
        "-s",
        help="Scenario to run when the file defines several.",
    ),
    vus: int | None = typer.Option(
        None,
        "--vus",
        "-u",
        help="Concurrent virtual users.",
        min=1,
    ),
    duration: str | None = typer.Option(
        None,
        "--duration",
        "-d",
        help="Run length, e.g. 30s, 1m30s.",
    ),
    ramp_up: str = typer.Option(
        "0",
        "--ramp-up",
        help="Time over which virtual users are started.",
    ),
    think_time: str | None = typer.Option(
        None,
        "--think-time",
        help="Pause between iterations: SECONDS or MIN,MAX.",
    ),
    graceful_stop: str | None = typer.Option(
        None,
        "--graceful-stop",
        help="Time in-flight iterations get to finish after the duration.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
        min=0.001,
    ),
    fail_on_check_rate: float | None = typer.Option(
        None,
        "--fail-on-check-rate",
        help="Exit non-zero if the fraction of failed checks exceeds this (e.g. 0.01).",
    ),
    no_live: bool = typer.Option(
        False,
        "--no-live",
        help="Disable the live table (useful in CI logs).",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON logs.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """Run virtual users for a fixed duration and report check results."""
    try:
        settings = load_settings()
        if scenario_file is None:
            definition = http_get_scenario(url or settings.url, expected_status=expect_status)
        else:
            definition = load_scenario(scenario_file, name=scenario_name)
        config = definition.build_config(
            settings,
            vus=vus,
            duration=duration,
            think_time=parse_think_time(think_time) if think_time is not None else None,
            ramp_up=ramp_up,
            graceful_stop=graceful_stop,
            request_timeout=timeout,
        )
    except LoadCheckError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Scenario:[/bold] {definition.name}\n"
            f"[bold]VUs:[/bold]      {config.vus}\n"
            f"[bold]Duration:[/bold] {format_duration(config.duration)}",
            title="loadcheck",
            border_style="cyan",
        )
    )

    runner = LoadTestRunner(
        definition,
        config,
        log_level=logging.DEBUG if verbose else logging.INFO,
        json_logs=json_logs,
    )

    try:
        if no_live:
            result = runner.run()
        else:
            with Live(
                _make_live_table(None),
                console=console,
                refresh_per_second=2,
                transient=True,
            ) as live:
                runner.store.subscribe(lambda snapshot: live.update(_make_live_table(snapshot)))
                result = runner.run()
    except LoadCheckError as exc:
        console.print(f"[red]Run failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    summary = result.final_summary
    if (
        fail_on_check_rate is not None
        and summary is not None
        and summary.check_failure_rate > fail_on_check_rate
    ):
        console.print(
            f"[red]FAIL:[/red] {summary.check_failure_rate * 100:.2f}% of checks failed, "
            f"threshold is {fail_on_check_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)

    console.print("[green]Run completed.[/green]")
