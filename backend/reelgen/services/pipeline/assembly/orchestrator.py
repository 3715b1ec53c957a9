"""
Pipeline orchestrator - runs one reel job end to end.

Stages:
    1. Validate inputs against the primary template
    2. Resolve coordinates when a flyover is needed
    3. Synthesize (or reuse) one motion clip per photo, in batches
    4. Capture (or reuse) the flyover clip
    5. Compose every requested template, in batches
    6. Upload and cache each composed reel
    7. Mark the job COMPLETED, or FAILED with the aggregated reason

Per-clip and per-template failures are recorded in the job metadata and
do not stop sibling work. A stage with zero successes fails the job.
"""

import asyncio
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from reelgen.config import SUPPORTED_INPUT_EXTENSIONS, Settings, TemplateRegistry, TemplateSpec
from reelgen.core import (
    LogTimer,
    NoSuccessfulClips,
    NoSuccessfulTemplates,
    ReelGenError,
    StorageError,
    TemplateCompositionFailed,
    ValidationError,
    clear_context,
    get_logger,
    set_job_context,
)
from reelgen.models import (
    AssetType,
    ClipArtifact,
    ClipRecord,
    Coordinates,
    Job,
    JobMetadata,
    JobStatus,
    PipelineResult,
    PipelineStage,
    RegenerationInfo,
    TemplateResult,
    utc_now_iso,
)
from reelgen.services.clients import FlyoverCaptureClient, VideoSynthesisClient
from reelgen.services.infrastructure.cache import AssetCache, content_hash, derive_cache_key
from reelgen.services.infrastructure.resources import ResourceTracker
from reelgen.services.infrastructure.retry import RetryExecutor
from reelgen.services.infrastructure.storage import JobStore, ListingDirectory, ObjectStore

from .composer import TemplateComposer
from .progress import ProgressTracker
from .regeneration import merge_clips_by_index

logger = get_logger(__name__, component="orchestrator")

T = TypeVar("T")


def _batched(items: Sequence[T], size: int) -> Iterable[List[T]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def template_storage_key(listing_id: str, job_id: str, template: str) -> str:
    return f"listings/{listing_id}/jobs/{job_id}/templates/{template}.mp4"


def _unwrap_gather(result):
    # gather(return_exceptions=True) also hands back cancellations
    if isinstance(result, BaseException) and not isinstance(result, Exception):
        raise result
    return result


class PipelineOrchestrator:

    def __init__(
        self,
        job_store: JobStore,
        object_store: ObjectStore,
        cache: AssetCache,
        synthesis: VideoSynthesisClient,
        flyover: Optional[FlyoverCaptureClient],
        composer: TemplateComposer,
        registry: TemplateRegistry,
        listings: Optional[ListingDirectory],
        settings: Settings,
        retry: Optional[RetryExecutor] = None,
    ):
        self.job_store = job_store
        self.object_store = object_store
        self.cache = cache
        self.synthesis = synthesis
        self.flyover = flyover
        self.composer = composer
        self.registry = registry
        self.listings = listings
        self.settings = settings
        self.retry = retry or RetryExecutor(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def resolve_templates(self, job: Job, templates: Optional[Sequence[str]] = None) -> List[TemplateSpec]:
        """Primary template first, then the rest of the fan-out, de-duplicated."""
        requested = list(templates or self.settings.default_templates or self.registry.names())
        names: List[str] = []
        for name in [job.template, *requested]:
            if name not in names:
                names.append(name)
        return [self.registry.get(name) for name in names]

    @staticmethod
    def validate_inputs(job: Job, primary: TemplateSpec) -> None:
        if not job.input_files:
            raise ValidationError("Job has no input photos")
        for ref in job.input_files:
            if not isinstance(ref, str) or not ref.strip():
                raise ValidationError("Input references must be non-empty strings")
            if not ref.lower().endswith(SUPPORTED_INPUT_EXTENSIONS):
                raise ValidationError(f"Unsupported input file type: {ref}")
        primary.check_clip_count(len(job.input_files))

    def _resolve_coordinates(self, job: Job, metadata: JobMetadata) -> Optional[Coordinates]:
        coordinates = job.coordinates
        if coordinates is None and self.listings is not None:
            coordinates = self.listings.get_coordinates(job.listing_id)
        if coordinates is not None:
            metadata.coordinates = coordinates.to_dict()
        return coordinates

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute(
        self,
        job: Job,
        templates: Optional[Sequence[str]] = None,
        regenerate_indices: Optional[Iterable[int]] = None,
    ) -> PipelineResult:
        """
        Run the full pipeline for ``job``.

        Args:
            job: Job record (typically PENDING, or a finished job being regenerated)
            templates: Templates to produce; the job's own template is always included
            regenerate_indices: Photo indices that must be synthesized again
                even when a cached clip exists

        Returns:
            PipelineResult for the COMPLETED job

        Raises:
            ValidationError, NoSuccessfulClips, NoSuccessfulTemplates, or any
            unexpected error. The job is marked FAILED before the error propagates.
        """
        set_job_context(job.id, job.listing_id)
        tracker = ResourceTracker(job.id)
        job_dir = tracker.track(self.settings.work_dir / job.id)
        metadata = job.metadata.model_copy(deep=True)
        regenerate: Set[int] = set(regenerate_indices or ())

        try:
            with LogTimer(logger, f"reel pipeline for job {job.id}"):
                specs = self.resolve_templates(job, templates)
                primary = specs[0]
                self.validate_inputs(job, primary)

                metadata.requested_templates = [spec.name for spec in specs]
                metadata.default_template = primary.name
                metadata.templates = []
                metadata.flyover_clip = None
                metadata.flyover_error = None
                metadata.regeneration = None
                # a resumed PROCESSING job keeps the progress it already reported
                start_progress = job.progress if job.status is JobStatus.PROCESSING else 0
                self.job_store.update(
                    job.id,
                    status=JobStatus.PROCESSING,
                    progress=start_progress,
                    error=None,
                    output_file=None,
                    completed_at=None,
                    metadata=metadata,
                )
                progress = ProgressTracker(self.job_store, job.id, metadata,
                                           flush_every=self.settings.progress_flush_every,
                                           initial_progress=start_progress)

                coordinates = None
                if any(spec.requires_flyover for spec in specs):
                    coordinates = self._resolve_coordinates(job, metadata)
                    if coordinates is None and primary.requires_flyover:
                        raise ValidationError(
                            f"Template '{primary.name}' needs listing coordinates, none are known"
                        )

                job_dir.mkdir(parents=True, exist_ok=True)
                clips = await self._produce_clips(job, metadata, progress, tracker, job_dir, regenerate)

                flyover_clip = None
                if coordinates is not None:
                    flyover_clip = await self._produce_flyover(job, coordinates, metadata, tracker, job_dir)
                progress.report(PipelineStage.FLYOVER, 55, "flyover")

                results = await self._produce_templates(job, specs, clips, flyover_clip,
                                                        metadata, progress, tracker, job_dir)

                successes = [result for result in results if result.succeeded]
                if not successes:
                    raise NoSuccessfulTemplates({r.template: r.error or "unknown error" for r in results})

                primary_result = next((r for r in successes if r.template == primary.name), successes[0])
                progress.report(PipelineStage.UPLOAD, 100, "completed")

            self.job_store.update(
                job.id,
                status=JobStatus.COMPLETED,
                progress=100,
                output_file=primary_result.output_location,
                error=None,
                completed_at=utc_now_iso(),
                metadata=metadata,
            )
            logger.info("Job completed", extra={
                "templates_succeeded": len(successes),
                "templates_requested": len(results),
                "output_file": primary_result.output_location,
            })
            return PipelineResult(
                job_id=job.id,
                status=JobStatus.COMPLETED.value,
                output_location=primary_result.output_location,
                templates={r.template: r.output_location for r in results},
            )
        except Exception as exc:
            self._mark_failed(job.id, exc, metadata)
            raise
        finally:
            tracker.cleanup()
            clear_context()

    def _mark_failed(self, job_id: str, exc: Exception, metadata: JobMetadata) -> None:
        try:
            self.job_store.update(
                job_id,
                status=JobStatus.FAILED,
                error=str(exc) or exc.__class__.__name__,
                output_file=None,
                metadata=metadata,
            )
        except ReelGenError as store_exc:
            logger.error("Could not record job failure", extra={"error": str(store_exc)})
        logger.error(f"Job failed: {exc}", extra={"error_type": exc.__class__.__name__})

    # ------------------------------------------------------------------
    # Clips
    # ------------------------------------------------------------------

    async def _cache_put(self, cache_key: str, artifact_path: Path, location: str,
                         asset_type: AssetType, info: Dict) -> Optional[str]:
        data = await asyncio.to_thread(Path(artifact_path).read_bytes)
        try:
            asset = await self.cache.put(cache_key, location, asset_type, metadata=info, content=data)
            return asset.content_hash
        except StorageError as exc:
            logger.warning("Failed to cache artifact", extra={"cache_key": cache_key, "error": str(exc)})
            return content_hash(data)

    async def _download_cached(self, cache_key: str, local_path: Path,
                               tracker: ResourceTracker) -> Optional[Tuple[str, str, Path]]:
        asset = await self.cache.get(cache_key)
        if asset is None:
            return None
        try:
            await self.retry.run(
                lambda: self.object_store.download_to(asset.location, tracker.track(local_path)),
                description=f"download cached {asset.asset_type.value}",
                retry_on=(StorageError,),
            )
        except StorageError as exc:
            logger.warning("Cached artifact unavailable, regenerating", extra={
                "cache_key": cache_key, "error": str(exc),
            })
            return None
        return asset.location, asset.content_hash, local_path

    async def _download_recorded(self, job: Job, index: int, ref: str, cache_key: str, local_path: Path,
                                 tracker: ResourceTracker) -> Optional[Tuple[str, str, Path]]:
        """Reuse the clip this job already stored for ``index`` after its cache entry expired."""
        record = next((clip for clip in job.metadata.clips
                       if clip.index == index and clip.source == ref and clip.succeeded), None)
        if record is None:
            return None
        try:
            if not await self.object_store.exists(record.location):
                return None
            await self.retry.run(
                lambda: self.object_store.download_to(record.location, tracker.track(local_path)),
                description="download recorded clip",
                retry_on=(StorageError,),
            )
        except StorageError as exc:
            logger.warning("Recorded clip unavailable, regenerating", extra={
                "index": index, "location": record.location, "error": str(exc),
            })
            return None
        digest = await self._cache_put(
            cache_key, local_path, record.location, AssetType.CLIP,
            {"source": ref, "job_id": job.id, "index": index},
        )
        return record.location, digest, local_path

    async def _synthesize_clip(self, job: Job, ref: str, index: int, cache_key: str,
                               tracker: ResourceTracker) -> ClipArtifact:
        artifact = await self.synthesis.generate_clip(
            ref, index, job_id=job.id, listing_id=job.listing_id, tracker=tracker,
        )
        artifact.content_hash = await self._cache_put(
            cache_key, artifact.local_path, artifact.location, AssetType.CLIP,
            {"source": ref, "job_id": job.id, "index": index},
        )
        return artifact

    async def _produce_clips(
        self,
        job: Job,
        metadata: JobMetadata,
        progress: ProgressTracker,
        tracker: ResourceTracker,
        job_dir: Path,
        regenerate: Set[int],
    ) -> List[ClipArtifact]:
        refs = job.input_files
        total = len(refs)
        params = self.synthesis.cache_params()
        reused: Dict[int, ClipArtifact] = {}
        fresh: Dict[int, ClipArtifact] = {}
        failures: Dict[int, str] = {}
        pending: List[int] = []
        done = 0

        for index, ref in enumerate(refs):
            if index in regenerate:
                pending.append(index)
                continue
            cache_key = derive_cache_key("clip", [ref], params)
            local_path = job_dir / "cached" / f"segment_{index}.mp4"
            hit = await self._download_cached(cache_key, local_path, tracker)
            if hit is None:
                hit = await self._download_recorded(job, index, ref, cache_key, local_path, tracker)
            if hit is None:
                pending.append(index)
                continue
            location, digest, local_path = hit
            reused[index] = ClipArtifact(index, ref, local_path, location, cached=True, content_hash=digest)
            done += 1
            progress.report_fraction(PipelineStage.SYNTHESIS, done, total, f"clip_{index}")

        logger.info(f"{len(reused)} clips reused from cache, {len(pending)} to synthesize", extra={
            "reused": sorted(reused),
            "pending": pending,
        })

        for batch in _batched(pending, self.settings.clip_batch_size):
            results = await asyncio.gather(
                *(self._synthesize_clip(job, refs[index], index,
                                        derive_cache_key("clip", [refs[index]], params), tracker)
                  for index in batch),
                return_exceptions=True,
            )
            for index, result in zip(batch, results):
                result = _unwrap_gather(result)
                if isinstance(result, Exception):
                    failures[index] = str(result) or result.__class__.__name__
                    logger.error(f"Clip {index} failed: {result}", extra={
                        "index": index, "error_type": result.__class__.__name__,
                    })
                else:
                    fresh[index] = result
                done += 1
                progress.report_fraction(PipelineStage.SYNTHESIS, done, total, f"clip_{index}")

        merged = merge_clips_by_index(reused, fresh)
        by_index = {clip.index: clip for clip in merged}
        metadata.clips = [
            ClipRecord(
                index=index,
                source=ref,
                location=by_index[index].location if index in by_index else None,
                cached=index in reused,
                regenerated=index in regenerate,
                error=failures.get(index),
            )
            for index, ref in enumerate(refs)
        ]
        if regenerate:
            metadata.regeneration = RegenerationInfo(
                regenerated_indices=sorted(regenerate),
                reused_indices=sorted(reused),
                total_photos=total,
            )

        if not merged:
            raise NoSuccessfulClips(failures)
        if failures:
            logger.warning(f"{len(failures)} of {total} clips failed, continuing with {len(merged)}",
                           extra={"failed_indices": sorted(failures)})
        return merged

    # ------------------------------------------------------------------
    # Flyover
    # ------------------------------------------------------------------

    async def _produce_flyover(
        self,
        job: Job,
        coordinates: Coordinates,
        metadata: JobMetadata,
        tracker: ResourceTracker,
        job_dir: Path,
    ) -> Optional[ClipArtifact]:
        params: Dict = {"coordinates": coordinates}
        if self.flyover is not None:
            params.update(self.flyover.cache_params())
        cache_key = derive_cache_key("flyover", [], params)
        hit = await self._download_cached(cache_key, job_dir / "cached" / "flyover.mp4", tracker)
        if hit is not None:
            location, digest, local_path = hit
            metadata.flyover_clip = location
            return ClipArtifact(-1, "flyover", local_path, location, cached=True, content_hash=digest)

        if self.flyover is None:
            metadata.flyover_error = "flyover capture is not configured"
            return None

        try:
            artifact = await self.flyover.capture(
                coordinates, job_id=job.id, listing_id=job.listing_id, tracker=tracker,
            )
            artifact.content_hash = await self._cache_put(
                cache_key, artifact.local_path, artifact.location, AssetType.FLYOVER,
                {"coordinates": coordinates.rounded().to_dict(), "job_id": job.id},
            )
        except Exception as exc:
            metadata.flyover_error = str(exc) or exc.__class__.__name__
            logger.error(f"Flyover capture failed: {exc}", extra={"error_type": exc.__class__.__name__})
            return None

        metadata.flyover_clip = artifact.location
        return artifact

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def _render_template(
        self,
        job: Job,
        spec: TemplateSpec,
        clips: List[ClipArtifact],
        flyover_clip: Optional[ClipArtifact],
        flyover_error: Optional[str],
        tracker: ResourceTracker,
        job_dir: Path,
    ) -> TemplateResult:
        started = time.monotonic()
        try:
            spec.check_clip_count(len(job.input_files))
            if spec.requires_flyover and flyover_clip is None:
                raise TemplateCompositionFailed(spec.name, flyover_error or "no listing coordinates for flyover")

            inputs = [clip.content_hash or clip.location for clip in clips]
            if spec.requires_flyover:
                inputs.append(flyover_clip.content_hash or flyover_clip.location)
            cache_key = derive_cache_key("template", inputs, {
                "template": spec.name,
                "sequence": spec.sequence,
                "durations": spec.durations,
            })

            cached = await self.cache.get(cache_key)
            if cached is not None:
                return TemplateResult(
                    template=spec.name,
                    status="completed",
                    output_location=cached.location,
                    processing_time=round(time.monotonic() - started, 3),
                    cached=True,
                )

            output_path = tracker.track(job_dir / f"{spec.name}.mp4")
            await self.composer.compose(
                spec,
                [clip.local_path for clip in clips],
                flyover_clip.local_path if flyover_clip else None,
                output_path,
                tracker,
            )
            location = await self.retry.run(
                lambda: self.object_store.put_file(
                    output_path, template_storage_key(job.listing_id, job.id, spec.name), "video/mp4",
                ),
                description=f"upload template {spec.name}",
                retry_on=(StorageError,),
            )
            await self._cache_put(cache_key, output_path, location, AssetType.TEMPLATE,
                                  {"template": spec.name, "job_id": job.id})
            return TemplateResult(
                template=spec.name,
                status="completed",
                output_location=location,
                processing_time=round(time.monotonic() - started, 3),
            )
        except ReelGenError as exc:
            return TemplateResult(
                template=spec.name,
                status="failed",
                error=str(exc),
                processing_time=round(time.monotonic() - started, 3),
            )

    async def _produce_templates(
        self,
        job: Job,
        specs: List[TemplateSpec],
        clips: List[ClipArtifact],
        flyover_clip: Optional[ClipArtifact],
        metadata: JobMetadata,
        progress: ProgressTracker,
        tracker: ResourceTracker,
        job_dir: Path,
    ) -> List[TemplateResult]:
        results: List[TemplateResult] = []
        total = len(specs)

        for batch in _batched(specs, self.settings.template_batch_size):
            outcomes = await asyncio.gather(
                *(self._render_template(job, spec, clips, flyover_clip, metadata.flyover_error,
                                        tracker, job_dir)
                  for spec in batch),
                return_exceptions=True,
            )
            for spec, outcome in zip(batch, outcomes):
                outcome = _unwrap_gather(outcome)
                if isinstance(outcome, Exception):
                    outcome = TemplateResult(template=spec.name, status="failed",
                                             error=str(outcome) or outcome.__class__.__name__)
                if outcome.succeeded:
                    logger.info(f"Template {spec.name} ready", extra={
                        "template": spec.name, "cached": outcome.cached,
                    })
                else:
                    logger.error(f"Template {spec.name} failed: {outcome.error}", extra={"template": spec.name})
                results.append(outcome)
                metadata.templates = list(results)
                progress.report_fraction(PipelineStage.TEMPLATE, len(results), total, spec.name)

        return results
