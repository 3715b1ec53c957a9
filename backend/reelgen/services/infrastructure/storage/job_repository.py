"""
Job repository - abstract data access for reel jobs.

The orchestrator, the recovery scanner and the regeneration service only
talk to this interface. ``FileJobStore`` (orchestration.job_manager) is the
bundled implementation; a database-backed store can be swapped in without
touching the pipeline.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from reelgen.models import Job, JobStatus

UPDATABLE_FIELDS = frozenset({
    "status",
    "progress",
    "output_file",
    "error",
    "metadata",
    "completed_at",
    "template",
    "input_files",
})


class JobStore(ABC):
    """Shared job record storage."""

    @abstractmethod
    def create(self, job: Job) -> Job:
        """Persist a new job and return the stored copy."""
        pass

    @abstractmethod
    def get(self, job_id: str) -> Optional[Job]:
        pass

    @abstractmethod
    def update(self, job_id: str, **fields: Any) -> Job:
        """
        Apply a partial update.

        Only keys in UPDATABLE_FIELDS are accepted. A value of ``None`` is
        written as-is, so ``output_file=None`` clears the field.

        Raises:
            JobNotFound: If the job does not exist
            ValueError: If an unknown field is passed
        """
        pass

    @abstractmethod
    def list_by_status_since(self, status: JobStatus, since: datetime, limit: int) -> List[Job]:
        """Jobs in ``status`` created at or after ``since``, newest first."""
        pass

    @abstractmethod
    def list_processing_by_listing(self, listing_id: str) -> List[Job]:
        pass
