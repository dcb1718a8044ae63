"""Test data builders for project files"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional


def make_text_scene(
    scene_id: str,
    duration: float = 2.0,
    text: Optional[str] = None,
    **extra: Any
) -> Dict[str, Any]:
    """Raw text scene as it appears in a project file"""
    scene = {
        "id": scene_id,
        "type": "text",
        "duration": duration,
        "content": {"text": text or f"Scene {scene_id}"},
    }
    scene.update(extra)
    return scene


def make_project_dict(
    scenes: List[Dict[str, Any]],
    name: str = "test-project",
    resolution: str = "640x360",
    fps: int = 24,
    **extra: Any
) -> Dict[str, Any]:
    project = {
        "version": "1.0",
        "name": name,
        "settings": {"resolution": resolution, "fps": fps},
        "scenes": scenes,
    }
    project.update(extra)
    return project


def write_project(directory: Path, data: Dict[str, Any], filename: str = "project.json") -> Path:
    """Write a project dict to disk and return the file path"""
    path = Path(directory) / filename
    path.write_text(json.dumps(data, indent=2))
    return path
