"""Configuration commands"""

import json

import click
from rich import box
from rich.console import Console
from rich.table import Table

from core.config import ConfigManager

console = Console()


def parse_value(raw: str):
    """Interpret numbers, booleans and null; anything else stays a string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def display_value(key: str, value) -> str:
    if "apikey" in key.lower().replace("_", "") and isinstance(value, str) and value:
        return f"{value[:4]}…{value[-4:]}" if len(value) > 8 else "****"
    return json.dumps(value) if not isinstance(value, str) else value


@click.group()
def config_cmd():
    """Configuration management (~/.reelsmith/config.json)"""
    pass


@config_cmd.command(name="get")
@click.argument("key")
def get_value(key: str):
    """Print the value of a dotted KEY (e.g. render.concurrency)"""
    value = ConfigManager().get(key)
    if value is None:
        console.print(f"[dim]{key} is not set[/dim]")
        raise SystemExit(1)
    console.print(display_value(key, value))


@config_cmd.command(name="set")
@click.argument("key")
@click.argument("value")
def set_value(key: str, value: str):
    """Set KEY to VALUE (JSON numbers and booleans are parsed)"""
    config = ConfigManager()
    config.set(key, parse_value(value))
    console.print(f"[green]✓[/green] {key} = {display_value(key, config.get(key))}")


@config_cmd.command()
@click.argument("key")
def unset(key: str):
    """Remove KEY from the configuration"""
    if ConfigManager().unset(key):
        console.print(f"[green]✓[/green] Removed {key}")
    else:
        console.print(f"[yellow]{key} was not set[/yellow]")


@config_cmd.command(name="list")
def list_values():
    """Show every configured value"""
    config = ConfigManager()
    values = config.flatten()
    if not values:
        console.print(f"[dim]No configuration in {config.path}[/dim]")
        return

    table = Table(title=str(config.path), box=box.ROUNDED)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in sorted(values.items()):
        table.add_row(key, display_value(key, value))
    console.print(table)
