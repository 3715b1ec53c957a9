"""
Cached artifact record and clip value objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .jobs import utc_now_iso


class AssetType(str, Enum):
    CLIP = "clip"
    FLYOVER = "flyover"
    TEMPLATE = "template"


@dataclass
class ProcessedAsset:
    """One entry of the artifact cache.

    Valid only while the object at ``location`` exists in durable storage
    and the entry is inside its expiry window.
    """

    cache_key: str
    asset_type: AssetType
    location: str
    content_hash: str
    created_at: str = field(default_factory=utc_now_iso)
    last_accessed: str = field(default_factory=utc_now_iso)
    access_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cache_key": self.cache_key,
            "asset_type": self.asset_type.value,
            "location": self.location,
            "content_hash": self.content_hash,
            "created_at": self.created_at,
            "last_accessed": self.last_accessed,
            "access_count": self.access_count,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessedAsset":
        return cls(
            cache_key=data["cache_key"],
            asset_type=AssetType(data["asset_type"]),
            location=data["location"],
            content_hash=data.get("content_hash", ""),
            created_at=data.get("created_at") or utc_now_iso(),
            last_accessed=data.get("last_accessed") or utc_now_iso(),
            access_count=int(data.get("access_count", 0)),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class ClipArtifact:
    """A clip available both locally (for composition) and in durable storage."""

    index: int
    source: str
    local_path: Path
    location: str
    cached: bool = False
    content_hash: Optional[str] = None


@dataclass
class PipelineResult:
    job_id: str
    status: str
    output_location: Optional[str]
    templates: Dict[str, Optional[str]] = field(default_factory=dict)


__all__ = [
    "AssetType",
    "ProcessedAsset",
    "ClipArtifact",
    "PipelineResult",
]
