"""
Progress Tracking Module
Buffers stage progress for one job execution and writes it to the job
store in batches, so a burst of per-clip updates costs one write.
"""

from typing import List, Optional

from reelgen.core import get_logger
from reelgen.models import JobMetadata, PipelineStage, stage_progress, utc_now_iso
from reelgen.services.infrastructure.storage import JobStore

logger = get_logger(__name__, component="progress_tracker")


class ProgressTracker:
    """
    Batched, monotonic progress reporting for a single job.

    Responsibilities:
    - Clamp reported values so job progress never moves backwards
    - Record the current stage and sub-stage in the job metadata
    - Flush to the job store every ``flush_every`` reports, or at 100

    The tracker shares the orchestrator's ``JobMetadata`` instance, so each
    flush also persists whatever per-clip and per-template results the
    orchestrator recorded since the last write.
    """

    def __init__(
        self,
        job_store: JobStore,
        job_id: str,
        metadata: JobMetadata,
        flush_every: int = 5,
        initial_progress: int = 0,
    ):
        self.job_store = job_store
        self.job_id = job_id
        self.metadata = metadata
        self.flush_every = max(flush_every, 1)

        self.progress = initial_progress
        self.flushed_progress = initial_progress
        self._pending_steps: List[str] = []
        self.flush_count = 0

    @property
    def pending(self) -> int:
        return len(self._pending_steps)

    def report(self, stage: PipelineStage, progress: int, sub_stage: Optional[str] = None) -> int:
        """
        Record progress for ``stage``.

        Args:
            stage: Pipeline stage the update belongs to
            progress: Overall job progress (0-100); lower values are ignored
            sub_stage: Optional finer-grained marker such as ``"clip_3"``

        Returns:
            The effective (clamped) progress value
        """
        self.progress = max(self.progress, min(int(progress), 100))
        self.metadata.current_stage = stage
        self.metadata.current_sub_stage = sub_stage
        self._pending_steps.append(sub_stage or stage.value)

        if len(self._pending_steps) >= self.flush_every or self.progress >= 100:
            self.flush()
        return self.progress

    def report_fraction(self, stage: PipelineStage, done: int, total: int, sub_stage: Optional[str] = None) -> int:
        fraction = done / total if total else 1.0
        return self.report(stage, stage_progress(stage, fraction), sub_stage)

    def flush(self) -> None:
        """Write buffered progress and metadata to the job store."""
        self.metadata.steps_completed = list(self._pending_steps)
        self.metadata.last_updated = utc_now_iso()
        self.job_store.update(self.job_id, progress=self.progress, metadata=self.metadata)
        self.flushed_progress = self.progress
        self.flush_count += 1
        logger.debug("Progress flushed", extra={
            "progress": self.progress,
            "stage": self.metadata.current_stage.value if self.metadata.current_stage else None,
            "steps": len(self._pending_steps),
        })
        self._pending_steps.clear()
