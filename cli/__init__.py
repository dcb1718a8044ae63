"""Reelsmith CLI"""

import logging

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .cache import cache_cmd
from .config import config_cmd
from .generate import generate_cmd
from .init import init_cmd
from .preview import preview_cmd
from .secrets import secrets_cli
from .validate import validate_cmd

# Load .env file at CLI startup
load_dotenv()

console = Console(stderr=True)

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", count=True, help="Show progress logging (-vv for debug)")
def main(verbose: int):
    """Reelsmith - render JSON project files to MP4

    \b
    Quick Start:
      reelsmith init project.json
      reelsmith validate project.json
      reelsmith generate project.json -o out.mp4 --mock

    \b
    Commands:
      init       Write a starter project file
      generate   Render a project to video
      preview    Render one still image per scene
      validate   Check a project file for problems
      cache      Inspect and clear generation caches
      config     Manage ~/.reelsmith/config.json
      secrets    Manage API keys in the OS keychain
    """
    logging.basicConfig(
        level=LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)],
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


main.add_command(init_cmd, name="init")
main.add_command(generate_cmd, name="generate")
main.add_command(preview_cmd, name="preview")
main.add_command(validate_cmd, name="validate")
main.add_command(cache_cmd, name="cache")
main.add_command(config_cmd, name="config")
main.add_command(secrets_cli, name="secrets")


if __name__ == "__main__":
    main()
