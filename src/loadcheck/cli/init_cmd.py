"""``loadcheck init``: scaffold a new scenario file from a template."""

from __future__ import annotations

from pathlib import Path
from string import Template

import typer
from rich.console import Console

console = Console(stderr=True)

_SCENARIO_TEMPLATE = Template('''\
"""Load test scenario: $name.

Run with:
    loadcheck run $filename
"""

from __future__ import annotations

from loadcheck import HttpClient, check, scenario


@scenario(name="$name", vus=10, duration="30s")
async def $func_name(client: HttpClient) -> None:
    res = await client.get("$url")
    check(res, {"status was 200": lambda r: r.status_code == 200})
''')


def init_cmd(
    name: str = typer.Argument(
        "my_scenario",
        help="Scenario name (also used for the file and function name).",
    ),
    url: str = typer.Option(
        "http://localhost:7878/",
        "--url",
        help="URL the scenario requests.",
    ),
    directory: Path = typer.Option(
        Path(),
        "--dir",
        help="Directory to write the file into.",
        file_okay=False,
    ),
) -> None:
    """Scaffold a new scenario file."""
    safe_name = "".join(c if c.isalnum() or c == "_" else "_" for c in name).lower()
    if not safe_name or safe_name[0].isdigit():
        safe_name = "scenario_" + safe_name

    filename = f"{safe_name}.py"
    target = directory / filename
    if target.exists():
        console.print(f"[red]File already exists:[/red] {target}")
        raise typer.Exit(code=1)

    content = _SCENARIO_TEMPLATE.substitute(
        name=name.replace("_", " ").replace("-", " ").title(),
        filename=filename,
        func_name=safe_name,
        url=url,
    )
    directory.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    console.print(f"[green]Created scenario:[/green] {target}")
