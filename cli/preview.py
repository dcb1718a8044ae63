"""Preview command - render one still image per scene"""

import asyncio
from pathlib import Path
from typing import List, Tuple

import click
from rich.console import Console
from rich.table import Table

from core.errors import ReelsmithError
from core.models.project import Project
from core.parser import load_project, validate_project
from core.pipeline import RenderPipeline, RenderServices

from .generate import print_error

console = Console()


async def _preview(project: Project, output_dir: Path, mock: bool) -> List[Tuple[str, Path]]:
    pipeline = RenderPipeline(RenderServices.create(mock=mock))
    return await pipeline.preview_project(project, output_dir)


@click.command()
@click.argument("project", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(file_okay=False, path_type=Path), default=Path("preview"),
              show_default=True, help="Directory for the preview images")
@click.option("--mock", is_flag=True, help="Use offline mock generators instead of Gemini")
def preview_cmd(project: Path, output: Path, mock: bool):
    """Write a still image of every scene in PROJECT.

    Useful for checking layout, colors and generated images without
    encoding any video.

    \b
    Examples:
      reelsmith preview intro.json
      reelsmith preview intro.json -o stills --mock
    """
    try:
        parsed = load_project(project)
        issues = validate_project(parsed)
    except ReelsmithError as e:
        print_error(e)
        raise SystemExit(1)

    if issues:
        console.print(f"[red]Project has {len(issues)} problem(s):[/red]")
        for issue in issues:
            console.print(f"  [yellow]{issue.path}[/yellow] {issue.message} [dim]({issue.code})[/dim]")
        raise SystemExit(1)

    with console.status("Rendering previews..."):
        try:
            previews = asyncio.run(_preview(parsed, output, mock))
        except ReelsmithError as e:
            print_error(e)
            raise SystemExit(1)

    table = Table(title=f"Previews in {output}")
    table.add_column("Scene", style="cyan")
    table.add_column("Image")
    for scene_id, path in previews:
        table.add_row(scene_id, path.name)
    console.print(table)
    console.print(f"[green]{len(previews)} preview(s) written[/green]")
