"""Validate command"""

from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.table import Table

from core.errors import ReelsmithError
from core.parser import load_project, validate_project
from .generate import print_error

console = Console()


@click.command()
@click.argument("project", type=click.Path(dir_okay=False, path_type=Path))
def validate_cmd(project: Path):
    """Check PROJECT for problems without rendering it."""
    try:
        parsed = load_project(project)
    except ReelsmithError as e:
        print_error(e)
        raise SystemExit(1)

    issues = validate_project(parsed)
    if not issues:
        console.print(
            f"[green]✓[/green] {parsed.name}: {len(parsed.scenes)} scenes, "
            f"{parsed.total_duration:.1f}s at {parsed.settings.resolution}"
        )
        return

    table = Table(title=f"{len(issues)} problem(s) in {project.name}", box=box.ROUNDED)
    table.add_column("Path", style="cyan")
    table.add_column("Code", style="yellow")
    table.add_column("Message")
    for issue in issues:
        table.add_row(issue.path, issue.code, issue.message)

    console.print(table)
    raise SystemExit(1)
