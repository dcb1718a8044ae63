"""Cache commands - inspect and clear the generation caches"""

import asyncio
from datetime import timedelta
from typing import Dict, Optional

import click
from rich import box
from rich.console import Console
from rich.table import Table

from core.caching import GenerationCache, create_image_cache, create_music_cache, create_narration_cache
from core.config import CACHE_KINDS, get_cache_dir
from core.ffmpeg import FFmpegService

console = Console()

KIND_CHOICES = [*CACHE_KINDS, "all"]


def format_bytes(size: int) -> str:
    """Human-readable byte count (1536 -> "1.5 KB")."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def open_caches(kind: str) -> Dict[str, GenerationCache]:
    """Caches selected by a --kind value, keyed by kind."""
    factories = {
        "images": lambda: create_image_cache(get_cache_dir("images")),
        "music": lambda: create_music_cache(get_cache_dir("music"), FFmpegService()),
        "narration": lambda: create_narration_cache(get_cache_dir("narration")),
    }
    kinds = CACHE_KINDS if kind == "all" else (kind,)
    return {k: factories[k]() for k in kinds}


@click.group()
def cache_cmd():
    """Generation cache management"""
    pass


kind_option = click.option(
    "--kind", "-k",
    type=click.Choice(KIND_CHOICES),
    default="all",
    show_default=True,
    help="Which cache to act on",
)


@cache_cmd.command()
@kind_option
def status(kind: str):
    """Show entry counts, sizes and ages"""

    async def collect():
        return {name: await cache.get_status() for name, cache in open_caches(kind).items()}

    statuses = asyncio.run(collect())

    table = Table(title="Generation Caches", box=box.ROUNDED)
    table.add_column("Cache", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Oldest")
    table.add_column("Newest")
    table.add_column("Directory", style="dim")

    for name, cache_status in statuses.items():
        table.add_row(
            name,
            str(cache_status.total_files),
            format_bytes(cache_status.total_size),
            cache_status.oldest_entry.strftime("%Y-%m-%d %H:%M") if cache_status.oldest_entry else "-",
            cache_status.newest_entry.strftime("%Y-%m-%d %H:%M") if cache_status.newest_entry else "-",
            cache_status.cache_dir,
        )

    console.print(table)


@cache_cmd.command()
@kind_option
def size(kind: str):
    """Show disk usage"""

    async def collect():
        return {name: await cache.get_size() for name, cache in open_caches(kind).items()}

    sizes = asyncio.run(collect())
    total = 0
    for name, cache_size in sizes.items():
        total += cache_size.bytes
        console.print(f"  {name:<10} {format_bytes(cache_size.bytes):>10}  ({cache_size.files} files)")
    if len(sizes) > 1:
        console.print(f"  {'total':<10} {format_bytes(total):>10}")


@cache_cmd.command()
@kind_option
@click.option("--older-than", type=click.IntRange(min=0), metavar="DAYS",
              help="Only remove entries not used in this many days")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
def clear(kind: str, older_than: Optional[int], yes: bool):
    """Remove cached artifacts"""
    if not yes:
        scope = f"entries unused for {older_than} days" if older_than is not None else "all entries"
        if not click.confirm(f"Remove {scope} from the {kind} cache(s)?"):
            return

    age = timedelta(days=older_than) if older_than is not None else None

    async def run():
        return {name: await cache.clear(older_than=age) for name, cache in open_caches(kind).items()}

    removed = asyncio.run(run())
    for name, count in removed.items():
        console.print(f"[green]✓[/green] {name}: removed {count} entries")
