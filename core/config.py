"""
Application directories and the user configuration file.

Everything lives under ``~/.reelsmith`` (override with REELSMITH_HOME):

    ~/.reelsmith/config.json
    ~/.reelsmith/cache/images/
    ~/.reelsmith/cache/music/
    ~/.reelsmith/cache/narration/

Usage:
    from core.config import ConfigManager

    config = ConfigManager()
    config.set("gemini.apiKey", "...")
    config.get("render.concurrency", 2)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "REELSMITH_HOME"
CONFIG_FILE = "config.json"

CACHE_KINDS = ("images", "music", "narration")


def get_app_dir() -> Path:
    """Root directory for configuration and caches."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".reelsmith"


def get_cache_dir(kind: str) -> Path:
    """
    Directory for one generation cache.

    Args:
        kind: One of "images", "music", "narration"
    """
    if kind not in CACHE_KINDS:
        raise ValueError(f"Unknown cache kind: {kind}")
    return get_app_dir() / "cache" / kind


class ConfigManager:
    """
    JSON configuration file with dotted-key access.

    Nested keys are addressed with dots: ``gemini.apiKey`` reads
    ``{"gemini": {"apiKey": ...}}``.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_app_dir() / CONFIG_FILE
        self._data: Optional[Dict[str, Any]] = None

    def load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data

        if not self.path.exists():
            self._data = {}
            return self._data

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._data = data if isinstance(data, dict) else {}
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable config file {self.path}: {e}")
            self._data = {}
        return self._data

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.load(), f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self.load()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        node = self.load()
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        self.save()

    def unset(self, key: str) -> bool:
        """Remove a key; returns False if it was not set."""
        parts = key.split(".")
        node = self.load()
        for part in parts[:-1]:
            node = node.get(part)
            if not isinstance(node, dict):
                return False
        if parts[-1] not in node:
            return False
        del node[parts[-1]]
        self.save()
        return True

    def flatten(self) -> Dict[str, Any]:
        """All leaf values keyed by their dotted path."""
        flat: Dict[str, Any] = {}

        def walk(prefix: str, node: Any) -> None:
            if isinstance(node, dict):
                for k, v in node.items():
                    walk(f"{prefix}.{k}" if prefix else k, v)
            else:
                flat[prefix] = node

        walk("", self.load())
        return flat
