"""
Data models shared across the pipeline.
"""

from .status import JobStatus, PipelineStage, STAGE_PROGRESS_WINDOWS, stage_progress
from .jobs import (
    Coordinates,
    ClipRecord,
    TemplateResult,
    RegenerationInfo,
    JobMetadata,
    Job,
    utc_now,
    utc_now_iso,
    parse_timestamp,
)
from .assets import AssetType, ProcessedAsset, ClipArtifact, PipelineResult

__all__ = [
    "JobStatus",
    "PipelineStage",
    "STAGE_PROGRESS_WINDOWS",
    "stage_progress",
    "Coordinates",
    "ClipRecord",
    "TemplateResult",
    "RegenerationInfo",
    "JobMetadata",
    "Job",
    "utc_now",
    "utc_now_iso",
    "parse_timestamp",
    "AssetType",
    "ProcessedAsset",
    "ClipArtifact",
    "PipelineResult",
]
