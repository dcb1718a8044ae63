"""
Content-addressable generation cache.

Each cache instance owns one directory holding artifact files named
``<key><ext>`` and a ``manifest.json`` index:

    ~/.reelsmith/cache/images/manifest.json
    ~/.reelsmith/cache/images/3f9a0c41d2e8b7a6.png

Manifest mutations happen synchronously between awaits, so concurrent scene
renders on one event loop never interleave a read-modify-write.
"""

import json
import logging
import mimetypes
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.models.cache import (
    CacheEntry,
    CacheManifest,
    CacheSize,
    CacheStatus,
    CacheUsage,
)

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


class GenerationCache:
    """
    Cache of generated artifacts keyed by normalized-parameter digests.

    Args:
        cache_dir: Directory for artifacts and the manifest
        extension: File extension for stored artifacts (e.g. ".png")
        model: Generator model recorded in entry metadata
        name: Label used in logs and reports
    """

    def __init__(
        self,
        cache_dir: Path,
        extension: str,
        model: str,
        name: Optional[str] = None
    ):
        self.cache_dir = Path(cache_dir)
        self.extension = extension if extension.startswith(".") else f".{extension}"
        self.model = model
        self.name = name or self.cache_dir.name
        self.manifest_path = self.cache_dir / MANIFEST_NAME
        self._manifest: Optional[CacheManifest] = None

    @property
    def mime_type(self) -> str:
        return mimetypes.types_map.get(self.extension, "application/octet-stream")

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{key}{self.extension}"

    async def initialize(self) -> None:
        """Create the cache directory and load (or create) the manifest."""
        if self._manifest is not None:
            return

        self.cache_dir.mkdir(parents=True, exist_ok=True)

        if not self.manifest_path.exists():
            self._manifest = CacheManifest()
            self._write_manifest()
            return

        try:
            with open(self.manifest_path, "r", encoding="utf-8") as f:
                self._manifest = CacheManifest.from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Corrupt {self.name} cache manifest, starting empty: {e}")
            self._manifest = CacheManifest()
            self._write_manifest()

    async def _ensure_manifest(self) -> CacheManifest:
        await self.initialize()
        return self._manifest

    def _write_manifest(self) -> None:
        tmp_path = self.manifest_path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._manifest.to_dict(), f, indent=2, default=str)
        tmp_path.replace(self.manifest_path)

    async def get(self, key: str, project: Optional[str] = None) -> Optional[Path]:
        """
        Look up an artifact.

        Args:
            key: Cache key
            project: Name of the project using the artifact

        Returns:
            Path to the artifact on a hit, None on a miss. An entry whose
            file has disappeared is pruned and reported as a miss.
        """
        manifest = await self._ensure_manifest()
        entry = manifest.find(key)
        if entry is None:
            return None

        path = self.path_for(key)
        if not path.exists():
            logger.warning(f"{self.name} cache entry {key} has no file; removing entry")
            manifest.remove(key)
            self._write_manifest()
            return None

        entry.usage.touch(project)
        self._write_manifest()
        logger.info(f"{self.name} cache hit: {key}")
        return path

    def _store(self, key: str, data: bytes) -> Path:
        path = self.path_for(key)
        path.write_bytes(data)
        return path

    async def _store_artifact(self, key: str, data: bytes) -> Path:
        """Write the artifact file; subclasses may transform the data."""
        return self._store(key, data)

    async def save(
        self,
        key: str,
        data: bytes,
        params: Dict[str, Any],
        project: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Path:
        """
        Store an artifact and record it in the manifest.

        Args:
            key: Cache key
            data: Artifact bytes
            params: The request parameters the key was derived from
            project: Name of the project that generated the artifact
            metadata: Extra metadata merged into the entry

        Returns:
            Final artifact path
        """
        manifest = await self._ensure_manifest()
        path = await self._store_artifact(key, data)

        now = datetime.now()
        entry_metadata = {
            "generatedAt": now.isoformat(),
            "model": self.model,
            "fileSize": path.stat().st_size,
            "mimeType": self.mime_type,
        }
        if metadata:
            entry_metadata.update(metadata)

        manifest.upsert(CacheEntry(
            key=key,
            params=params,
            metadata=entry_metadata,
            usage=CacheUsage(
                last_used=now,
                use_count=1,
                projects=[project] if project else [],
            ),
        ))
        self._write_manifest()
        logger.info(f"{self.name} cache stored: {key} ({entry_metadata['fileSize']} bytes)")
        return path

    async def clear(self, older_than: Optional[timedelta] = None) -> int:
        """
        Remove artifacts.

        Args:
            older_than: Only remove entries last used longer ago than this;
                remove everything when None

        Returns:
            Number of entries removed
        """
        manifest = await self._ensure_manifest()
        cutoff = datetime.now() - older_than if older_than is not None else None

        kept: List[CacheEntry] = []
        removed = 0
        for entry in manifest.entries:
            if cutoff is not None and entry.usage.last_used >= cutoff:
                kept.append(entry)
                continue
            self.path_for(entry.key).unlink(missing_ok=True)
            removed += 1

        if cutoff is None:
            # Sweep artifacts the manifest lost track of
            for orphan in self.cache_dir.glob(f"*{self.extension}"):
                orphan.unlink(missing_ok=True)

        manifest.entries = kept
        self._write_manifest()
        logger.info(f"{self.name} cache cleared: {removed} entries")
        return removed

    async def get_status(self) -> CacheStatus:
        manifest = await self._ensure_manifest()
        size = await self.get_size()

        status = CacheStatus(
            cache_dir=str(self.cache_dir),
            total_files=len(manifest.entries),
            total_size=size.bytes,
        )
        if manifest.entries:
            generated = sorted(e.generated_at for e in manifest.entries)
            status.oldest_entry = generated[0]
            status.newest_entry = generated[-1]
        return status

    async def get_size(self) -> CacheSize:
        """Total bytes and file count of artifacts on disk."""
        await self._ensure_manifest()
        size = CacheSize()
        for path in self.cache_dir.glob(f"*{self.extension}"):
            if path.is_file():
                size.bytes += path.stat().st_size
                size.files += 1
        return size

    async def entries(self) -> List[CacheEntry]:
        manifest = await self._ensure_manifest()
        return list(manifest.entries)
