"""
CLI commands for secure API key management.

Usage:
    reelsmith secrets list          # Show configured keys
    reelsmith secrets set KEY       # Store a key securely
    reelsmith secrets delete KEY    # Remove a key
"""

import click
from rich.console import Console
from rich.table import Table

from core.secrets import (
    KNOWN_KEYS,
    delete_api_key,
    is_keyring_available,
    list_api_keys,
    set_api_key,
)

console = Console()

STATUS_DISPLAY = {
    "keychain": "[green]Keychain[/green]",
    "config": "[cyan]Config file[/cyan]",
    "env": "[yellow]Env var[/yellow]",
}


def normalize_key_name(key_name: str) -> str:
    """Upper-case and append _API_KEY to bare names (gemini -> GEMINI_API_KEY)."""
    key_name = key_name.upper()
    if key_name not in KNOWN_KEYS and not key_name.endswith("_KEY"):
        key_name = f"{key_name}_API_KEY"
    return key_name


@click.group(name="secrets")
def secrets_cli():
    """Manage API keys securely using OS keychain."""
    pass


@secrets_cli.command(name="list")
def list_keys():
    """List all API keys and where they are configured."""
    if not is_keyring_available():
        console.print(
            "[yellow]Warning:[/yellow] keyring not available. "
            "Install with: pip install keyring"
        )

    status = list_api_keys()

    table = Table(title="API Key Status")
    table.add_column("Key", style="cyan")
    table.add_column("Description", style="dim")
    table.add_column("Status", style="bold")

    for key_name, description in KNOWN_KEYS.items():
        display = STATUS_DISPLAY.get(status.get(key_name), "[red]Not set[/red]")
        table.add_row(key_name, description, display)

    console.print(table)


@secrets_cli.command(name="set")
@click.argument("key_name")
@click.option("--value", "-v", help="API key value (will prompt if not provided)")
def set_key(key_name: str, value: str = None):
    """Store an API key in the secure keychain."""
    if not is_keyring_available():
        console.print(
            "[red]Error:[/red] keyring not available. "
            "Install with: pip install keyring"
        )
        raise SystemExit(1)

    key_name = normalize_key_name(key_name)
    if key_name not in KNOWN_KEYS:
        console.print(f"[yellow]Warning:[/yellow] {key_name} is not a recognized key name.")
        if not click.confirm("Store anyway?"):
            return

    if not value:
        value = click.prompt(f"Enter value for {key_name}", hide_input=True)

    if set_api_key(key_name, value):
        console.print(f"[green]Success:[/green] Stored {key_name} in secure keychain")
    else:
        console.print(f"[red]Error:[/red] Failed to store {key_name}")
        raise SystemExit(1)


@secrets_cli.command(name="delete")
@click.argument("key_name")
@click.option("--force", "-f", is_flag=True, help="Don't ask for confirmation")
def delete_key(key_name: str, force: bool = False):
    """Delete an API key from the keychain."""
    key_name = normalize_key_name(key_name)

    if not force and not click.confirm(f"Delete {key_name} from keychain?"):
        return

    if delete_api_key(key_name):
        console.print(f"[green]Success:[/green] Deleted {key_name} from keychain")
    else:
        console.print(f"[yellow]Warning:[/yellow] {key_name} not found in keychain")
