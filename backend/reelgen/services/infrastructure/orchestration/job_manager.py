"""
File-backed job store with disk-first persistence and a bounded RAM cache.
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional

from reelgen.core import JobNotFound, get_logger
from reelgen.models import Job, JobMetadata, JobStatus, parse_timestamp, utc_now_iso
from reelgen.services.infrastructure.storage.job_repository import UPDATABLE_FIELDS, JobStore

logger = get_logger(__name__, component="job_store")


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created(job: Job) -> datetime:
    return parse_timestamp(job.created_at) or _EPOCH


def _copy(job: Job) -> Job:
    return Job.from_dict(job.to_dict())


class FileJobStore(JobStore):
    """One JSON file per job under ``storage_dir``.

    Returned jobs are copies; mutate them freely and write back with
    ``update``.
    """

    def __init__(self, storage_dir: Path, cache_limit: Optional[int] = None):
        self._storage_dir = Path(storage_dir)
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._cache_limit = cache_limit if cache_limit is not None else _env_int("JOB_STORE_CACHE_LIMIT", 200, 25)

        self._jobs: Dict[str, Job] = {}
        self._known_job_ids: set[str] = set()
        self._lock = RLock()

        self._index_jobs()

    def _index_jobs(self) -> None:
        with self._lock:
            self._known_job_ids = {job_file.stem for job_file in self._storage_dir.glob("*.json")}

    def _job_file(self, job_id: str) -> Path:
        return self._storage_dir / f"{job_id}.json"

    def _load_job_from_disk(self, job_id: str) -> Optional[Job]:
        job_file = self._job_file(job_id)
        if not job_file.exists():
            return None
        try:
            with open(job_file, "r", encoding="utf-8") as f:
                return Job.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as exc:
            logger.error(f"Failed to load job file {job_file}", extra={"error": str(exc)})
            return None

    def _prune_cache(self) -> None:
        if len(self._jobs) <= self._cache_limit:
            return
        evictable = [job_id for job_id, job in self._jobs.items() if job.status.is_terminal()]
        evictable.sort(key=lambda job_id: self._jobs[job_id].updated_at)
        while len(self._jobs) > self._cache_limit and evictable:
            self._jobs.pop(evictable.pop(0), None)

    def _cache_job(self, job: Job) -> None:
        self._jobs[job.id] = job
        self._prune_cache()

    def _save_job(self, job: Job) -> None:
        job_file = self._job_file(job.id)
        tmp_file = job_file.with_suffix(".json.tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(job.to_dict(), f, indent=2, ensure_ascii=False)
        tmp_file.replace(job_file)
        self._known_job_ids.add(job.id)

    def _lookup(self, job_id: str) -> Optional[Job]:
        cached = self._jobs.get(job_id)
        if cached:
            return cached
        if job_id not in self._known_job_ids:
            return None
        job = self._load_job_from_disk(job_id)
        if not job:
            self._known_job_ids.discard(job_id)
            return None
        self._cache_job(job)
        return job

    def _all_jobs(self) -> List[Job]:
        jobs: List[Job] = []
        for job_id in sorted(self._known_job_ids):
            job = self._jobs.get(job_id) or self._load_job_from_disk(job_id)
            if job:
                jobs.append(job)
        return jobs

    def create(self, job: Job) -> Job:
        with self._lock:
            if job.id in self._known_job_ids:
                raise ValueError(f"Job {job.id} already exists")
            stored = _copy(job)
            self._save_job(stored)
            self._cache_job(stored)
            logger.info("Job created", extra={"job_id": job.id, "listing_id": job.listing_id})
            return _copy(stored)

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._lookup(job_id)
            return _copy(job) if job else None

    def update(self, job_id: str, **fields: Any) -> Job:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown job fields: {', '.join(sorted(unknown))}")

        with self._lock:
            job = self._lookup(job_id)
            if not job:
                raise JobNotFound(f"Job {job_id} not found")

            for name, value in fields.items():
                if name == "status" and not isinstance(value, JobStatus):
                    value = JobStatus(value)
                elif name == "metadata" and not isinstance(value, JobMetadata):
                    value = JobMetadata.from_store(value)
                elif name == "metadata":
                    value = value.model_copy(deep=True)
                elif name == "input_files":
                    value = list(value)
                setattr(job, name, value)

            job.updated_at = utc_now_iso()
            self._save_job(job)
            self._cache_job(job)
            return _copy(job)

    def list_by_status_since(self, status: JobStatus, since: datetime, limit: int) -> List[Job]:
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        with self._lock:
            matches = [
                job for job in self._all_jobs()
                if job.status is status and _created(job) >= since
            ]
        matches.sort(key=_created, reverse=True)
        return [_copy(job) for job in matches[:limit]]

    def list_processing_by_listing(self, listing_id: str) -> List[Job]:
        with self._lock:
            return [
                _copy(job) for job in self._all_jobs()
                if job.listing_id == listing_id and job.status is JobStatus.PROCESSING
            ]

    def delete(self, job_id: str) -> bool:
        with self._lock:
            self._jobs.pop(job_id, None)
            existed = job_id in self._known_job_ids
            self._known_job_ids.discard(job_id)
            self._job_file(job_id).unlink(missing_ok=True)
            return existed
