"""
Job record and its typed metadata.

``Job`` is the in-process dataclass the orchestrator works with.
``JobMetadata`` is a pydantic model; it is only turned into a plain dict
when the job is written to the job store.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .status import JobStatus, PipelineStage


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def rounded(self, places: int = 6) -> "Coordinates":
        return Coordinates(round(self.lat, places), round(self.lng, places))

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Coordinates"]:
        if not data or data.get("lat") is None or data.get("lng") is None:
            return None
        return cls(float(data["lat"]), float(data["lng"]))


class ClipRecord(BaseModel):
    index: int
    source: str
    location: Optional[str] = None
    cached: bool = False
    regenerated: bool = False
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.location is not None and self.error is None


class TemplateResult(BaseModel):
    template: str
    status: str = "pending"  # "completed" | "failed"
    output_location: Optional[str] = None
    error: Optional[str] = None
    processing_time: Optional[float] = None
    cached: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == "completed" and self.output_location is not None


class RegenerationInfo(BaseModel):
    timestamp: str = Field(default_factory=utc_now_iso)
    regenerated_indices: List[int] = Field(default_factory=list)
    reused_indices: List[int] = Field(default_factory=list)
    total_photos: int = 0


class JobMetadata(BaseModel):
    current_stage: Optional[PipelineStage] = None
    current_sub_stage: Optional[str] = None
    steps_completed: List[str] = Field(default_factory=list)
    last_updated: Optional[str] = None

    coordinates: Optional[Dict[str, float]] = None
    clips: List[ClipRecord] = Field(default_factory=list)
    flyover_clip: Optional[str] = None
    flyover_error: Optional[str] = None

    requested_templates: List[str] = Field(default_factory=list)
    templates: List[TemplateResult] = Field(default_factory=list)
    default_template: Optional[str] = None

    regeneration: Optional[RegenerationInfo] = None

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_store(cls, data: Optional[Dict[str, Any]]) -> "JobMetadata":
        return cls.model_validate(data or {})

    def successful_templates(self) -> List[TemplateResult]:
        return [result for result in self.templates if result.succeeded]


@dataclass
class Job:
    id: str
    listing_id: str
    user_id: Optional[str] = None
    template: str = "crescendo"
    input_files: List[str] = field(default_factory=list)
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    output_file: Optional[str] = None
    error: Optional[str] = None
    metadata: JobMetadata = field(default_factory=JobMetadata)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)
    completed_at: Optional[str] = None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return Coordinates.from_dict(self.metadata.coordinates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "listing_id": self.listing_id,
            "user_id": self.user_id,
            "template": self.template,
            "input_files": list(self.input_files),
            "status": self.status.value,
            "progress": self.progress,
            "output_file": self.output_file,
            "error": self.error,
            "metadata": self.metadata.to_store(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        return cls(
            id=data["id"],
            listing_id=data["listing_id"],
            user_id=data.get("user_id"),
            template=data.get("template", "crescendo"),
            input_files=list(data.get("input_files") or []),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            progress=int(data.get("progress", 0)),
            output_file=data.get("output_file"),
            error=data.get("error"),
            metadata=JobMetadata.from_store(data.get("metadata")),
            created_at=data.get("created_at") or utc_now_iso(),
            updated_at=data.get("updated_at") or utc_now_iso(),
            completed_at=data.get("completed_at"),
        )


__all__ = [
    "Coordinates",
    "ClipRecord",
    "TemplateResult",
    "RegenerationInfo",
    "JobMetadata",
    "Job",
    "utc_now",
    "utc_now_iso",
    "parse_timestamp",
]
