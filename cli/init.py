"""Init command - write a starter project file"""

import json
from pathlib import Path

import click
from rich.console import Console

console = Console()

STARTER_PROJECT = {
    "version": "1.0",
    "name": "My First Video",
    "settings": {
        "resolution": "1920x1080",
        "fps": 30,
        "narrationDefaults": {
            "voice": {
                "languageCode": "en-US",
                "name": "Kore",
                "speakingRate": 1.0,
            },
            "volumeMix": {
                "narration": 0.8,
                "bgm": 0.3,
            },
        },
    },
    "audio": {
        "backgroundMusic": {
            "src": "generate://ambient piano music for a presentation",
            "volume": 0.3,
            "fadeIn": 2,
            "fadeOut": 3,
        },
    },
    "scenes": [
        {
            "id": "intro",
            "type": "text",
            "duration": 5,
            "content": {
                "text": "Hello, Reelsmith!",
                "style": {
                    "fontSize": 64,
                    "color": "#FFFFFF",
                    "fontFamily": "Arial",
                    "fontWeight": "bold",
                    "textAlign": "center",
                },
                "position": {"x": "center", "y": "center"},
            },
            "background": {
                "type": "gradient",
                "value": "linear-gradient(45deg, #FC466B 0%, #3F5EFB 100%)",
            },
            "transition": {"type": "fade", "duration": 0.5},
            "narration": {"text": "Hello, Reelsmith!"},
        },
        {
            "id": "sunset",
            "type": "image",
            "duration": 8,
            "content": {
                "src": "generate://A beautiful sunset over the ocean with orange and pink sky",
                "fit": "cover",
            },
            "animation": {"type": "zoom-in", "duration": 8},
            "narration": {"text": "This sunset was generated when the video was rendered."},
        },
    ],
}


@click.command()
@click.argument("filename", type=click.Path(dir_okay=False, path_type=Path), default=Path("project.json"))
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
def init_cmd(filename: Path, force: bool):
    """Create a starter project at FILENAME (default: project.json)."""
    if filename.exists() and not force:
        console.print(f"[red]{filename} already exists.[/red] Use --force to overwrite.")
        raise SystemExit(1)

    filename.parent.mkdir(parents=True, exist_ok=True)
    filename.write_text(json.dumps(STARTER_PROJECT, indent=2) + "\n", encoding="utf-8")

    console.print(f"[green]Created {filename}[/green]\n")
    console.print("Next steps:")
    console.print("  1. Edit the project file to customize your video")
    console.print(f"  2. reelsmith validate {filename}")
    console.print(f"  3. reelsmith preview {filename} --mock")
    console.print(f"  4. reelsmith generate {filename}")
