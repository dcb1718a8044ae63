"""
Generation cache models

The manifest is stored as JSON with camel-cased keys:

    {"version": "1.0", "entries": [{"key", "params", "metadata", "usage"}]}
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


MANIFEST_VERSION = "1.0"


@dataclass
class CacheUsage:
    last_used: datetime
    use_count: int = 0
    projects: List[str] = field(default_factory=list)

    def touch(self, project: Optional[str] = None) -> None:
        self.last_used = datetime.now()
        self.use_count += 1
        if project and project not in self.projects:
            self.projects.append(project)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUsed": self.last_used.isoformat(),
            "useCount": self.use_count,
            "projects": list(self.projects),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheUsage":
        return cls(
            last_used=datetime.fromisoformat(data["lastUsed"]),
            use_count=data.get("useCount", 0),
            projects=list(data.get("projects", [])),
        )


@dataclass
class CacheEntry:
    """
    One cached artifact.

    ``metadata`` always holds generatedAt, model, fileSize and mimeType;
    caches may add kind-specific fields (e.g. sampleRate for music).
    """
    key: str
    params: Dict[str, Any]
    metadata: Dict[str, Any]
    usage: CacheUsage

    @property
    def generated_at(self) -> datetime:
        return datetime.fromisoformat(self.metadata["generatedAt"])

    @property
    def file_size(self) -> int:
        return int(self.metadata.get("fileSize", 0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "params": self.params,
            "metadata": self.metadata,
            "usage": self.usage.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            key=data["key"],
            params=data.get("params", {}),
            metadata=data.get("metadata", {}),
            usage=CacheUsage.from_dict(data["usage"]),
        )


@dataclass
class CacheManifest:
    version: str = MANIFEST_VERSION
    entries: List[CacheEntry] = field(default_factory=list)

    def find(self, key: str) -> Optional[CacheEntry]:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def remove(self, key: str) -> bool:
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.key != key]
        return len(self.entries) != before

    def upsert(self, entry: CacheEntry) -> None:
        self.remove(entry.key)
        self.entries.append(entry)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheManifest":
        return cls(
            version=data.get("version", MANIFEST_VERSION),
            entries=[CacheEntry.from_dict(e) for e in data.get("entries", [])],
        )


@dataclass
class CacheStatus:
    """Aggregate view of one cache for reporting"""
    cache_dir: str
    total_files: int = 0
    total_size: int = 0
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None


@dataclass
class CacheSize:
    bytes: int = 0
    files: int = 0
