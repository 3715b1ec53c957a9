"""
Job status and pipeline stage enumerations.
"""

from enum import Enum


class JobStatus(Enum):
    """Lifecycle: PENDING -> PROCESSING -> COMPLETED | FAILED."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def is_in_progress(self) -> bool:
        return self is JobStatus.PROCESSING


class PipelineStage(str, Enum):
    """Sub-stage of a PROCESSING job. Informational only."""

    SYNTHESIS = "synthesis"
    FLYOVER = "flyover"
    TEMPLATE = "template"
    UPLOAD = "upload"


# Progress window (start, end) each stage maps onto
STAGE_PROGRESS_WINDOWS = {
    PipelineStage.SYNTHESIS: (0, 50),
    PipelineStage.FLYOVER: (50, 55),
    PipelineStage.TEMPLATE: (55, 95),
    PipelineStage.UPLOAD: (95, 100),
}


def stage_progress(stage: PipelineStage, fraction: float) -> int:
    """Map a 0..1 fraction within ``stage`` onto overall job progress."""
    start, end = STAGE_PROGRESS_WINDOWS[stage]
    fraction = min(max(fraction, 0.0), 1.0)
    return int(round(start + (end - start) * fraction))


__all__ = [
    "JobStatus",
    "PipelineStage",
    "STAGE_PROGRESS_WINDOWS",
    "stage_progress",
]
