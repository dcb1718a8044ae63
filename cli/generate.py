"""Generate command - render a project file to MP4"""

import asyncio
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from core.config import ConfigManager
from core.errors import ReelsmithError
from core.models.render import RenderOptions, RenderResult
from core.parser import load_project, validate_project
from core.pipeline import RenderPipeline, RenderServices

console = Console()

DEFAULT_CONCURRENCY = 2


def print_error(error: ReelsmithError) -> None:
    console.print(f"[red]Error {escape('[' + error.code + ']')}: {escape(error.message)}[/red]")


async def _render(project_path: Path, options: RenderOptions, mock: bool) -> RenderResult:
    pipeline = RenderPipeline(RenderServices.create(mock=mock))
    return await pipeline.render(project_path, options)


@click.command()
@click.argument("project", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Output video path (default: <project>.mp4 next to the project file)")
@click.option("--temp-dir", "-t", type=click.Path(file_okay=False, path_type=Path),
              help="Scratch directory for intermediate files")
@click.option("--keep-temp", is_flag=True, help="Keep intermediate files after rendering")
@click.option("--concurrency", "-c", type=click.IntRange(min=1),
              help="Scenes rendered at once (default: config render.concurrency or 2)")
@click.option("--mock", is_flag=True, help="Use offline mock generators instead of Gemini")
def generate_cmd(
    project: Path,
    output: Optional[Path],
    temp_dir: Optional[Path],
    keep_temp: bool,
    concurrency: Optional[int],
    mock: bool
):
    """Render PROJECT to an MP4 video.

    \b
    Examples:
      reelsmith generate intro.json
      reelsmith generate intro.json -o build/intro.mp4 -c 4
      reelsmith generate intro.json --mock --keep-temp
    """
    try:
        issues = validate_project(load_project(project))
    except ReelsmithError as e:
        print_error(e)
        raise SystemExit(1)

    if issues:
        console.print(f"[red]Project has {len(issues)} problem(s):[/red]")
        for issue in issues:
            console.print(f"  [yellow]{issue.path}[/yellow] {issue.message} [dim]({issue.code})[/dim]")
        console.print("Fix the project file and try again (see `reelsmith validate`)")
        raise SystemExit(1)

    if concurrency is None:
        concurrency = int(ConfigManager().get("render.concurrency", DEFAULT_CONCURRENCY))
    output = output or project.with_suffix(".mp4")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Starting...", total=100)

        def on_progress(percent: float, message: str) -> None:
            progress.update(task, completed=percent, description=message)

        options = RenderOptions(
            output_path=output,
            temp_dir=temp_dir,
            concurrency=concurrency,
            keep_temp=keep_temp,
            on_progress=on_progress,
        )
        try:
            result = asyncio.run(_render(project, options, mock))
        except ReelsmithError as e:
            progress.stop()
            print_error(e)
            stderr = e.details.get("stderr")
            if stderr:
                console.print(f"[dim]{escape(stderr[-800:])}[/dim]")
            raise SystemExit(1)

    console.print(f"\n[green]Render complete![/green]")
    console.print(f"  Output: {result.output_path}")
    if result.duration:
        console.print(f"  Duration: {result.duration:.1f}s")
    console.print(f"  Scenes: {result.scene_count} ({len(result.narrated_scenes)} narrated)")
    console.print(f"  Render time: {result.render_time:.1f}s")
