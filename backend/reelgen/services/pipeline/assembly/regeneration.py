"""
Selective regeneration - redo a subset of a job's photos and recompose.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set, TypeVar, Union

from reelgen.core import JobNotFound, ValidationError, get_logger
from reelgen.models import Job, JobStatus, PipelineResult
from reelgen.services.infrastructure.storage import JobStore

logger = get_logger(__name__, component="regeneration")

T = TypeVar("T")


def merge_clips_by_index(reused: Dict[int, T], regenerated: Dict[int, T]) -> List[T]:
    """
    Merge reused and freshly regenerated clips into photo order.

    A regenerated clip replaces the reused one at the same index. The
    result is ordered by photo index, never by completion order.
    """
    merged: Dict[int, T] = dict(reused)
    merged.update(regenerated)
    return [merged[index] for index in sorted(merged)]


def resolve_photo_indices(input_files: Sequence[str], photos: Iterable[Union[int, str]]) -> List[int]:
    """Map photo references (or indices) onto positions in ``input_files``."""
    positions = {ref: index for index, ref in enumerate(input_files)}
    indices: Set[int] = set()
    for photo in photos:
        if isinstance(photo, int) and not isinstance(photo, bool):
            if not 0 <= photo < len(input_files):
                raise ValidationError(f"Photo index {photo} out of range (job has {len(input_files)} photos)")
            indices.add(photo)
        elif photo in positions:
            indices.add(positions[photo])
        else:
            raise ValidationError(f"Photo '{photo}' is not part of this job")
    return sorted(indices)


class RegenerationService:
    """Re-runs a finished job for selected photos only.

    Photos that are not selected reuse their cached clips; the selected
    ones are synthesized again and every requested template is recomposed
    over the merged set.
    """

    def __init__(self, job_store: JobStore, orchestrator):
        self.job_store = job_store
        self.orchestrator = orchestrator

    def _load(self, job_id: str) -> Job:
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFound(f"Job {job_id} not found")
        return job

    async def regenerate(
        self,
        job_id: str,
        photos: Iterable[Union[int, str]],
        templates: Optional[Sequence[str]] = None,
    ) -> PipelineResult:
        """
        Args:
            job_id: Job to regenerate
            photos: Photo references from the job's inputs, or their indices
            templates: Templates to recompose; defaults to the templates the
                job last requested

        Raises:
            JobNotFound: Unknown job
            ValidationError: Empty or unknown photo selection, or the job is
                still processing
        """
        job = self._load(job_id)
        if job.status is JobStatus.PROCESSING:
            raise ValidationError(f"Job {job_id} is still processing")

        indices = resolve_photo_indices(job.input_files, photos)
        if not indices:
            raise ValidationError("Select at least one photo to regenerate")

        scope = list(templates) if templates else (job.metadata.requested_templates or None)
        logger.info(f"Regenerating {len(indices)} of {len(job.input_files)} photos", extra={
            "job_id": job_id,
            "regenerate_indices": indices,
            "templates": scope,
        })
        return await self.orchestrator.execute(job, templates=scope, regenerate_indices=indices)
