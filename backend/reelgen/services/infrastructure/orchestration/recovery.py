"""
Startup recovery of jobs that were accepted but never processed.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Set

from reelgen.core import get_logger
from reelgen.models import Job, JobStatus, parse_timestamp, utc_now
from reelgen.services.infrastructure.storage import JobStore

logger = get_logger(__name__, component="recovery")


@dataclass
class RecoveryReport:
    resubmitted: List[str] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)


class RecoveryScanner:
    """
    Finds recent PENDING jobs (and optionally stuck PROCESSING ones) and
    hands them back to the orchestrator.

    A candidate is skipped when its listing has a PROCESSING job that is not
    itself a candidate, or when an earlier candidate of the same listing was
    resubmitted in this pass.
    """

    def __init__(
        self,
        job_store: JobStore,
        orchestrator,
        window: timedelta = timedelta(hours=24),
        batch_limit: int = 5,
        include_processing: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.job_store = job_store
        self.orchestrator = orchestrator
        self.window = window
        self.batch_limit = batch_limit
        self.include_processing = include_processing
        self._clock = clock

    def find_candidates(self) -> List[Job]:
        since = self._clock() - self.window
        candidates = self.job_store.list_by_status_since(JobStatus.PENDING, since, self.batch_limit)
        if self.include_processing:
            candidates += self.job_store.list_by_status_since(JobStatus.PROCESSING, since, self.batch_limit)
        candidates.sort(key=lambda job: parse_timestamp(job.created_at) or since, reverse=True)
        return candidates[:self.batch_limit]

    def select(self, candidates: List[Job], report: RecoveryReport) -> List[Job]:
        selected: List[Job] = []
        claimed: Set[str] = set()
        # candidates of this pass are interrupted, so they never block each other
        candidate_ids = {job.id for job in candidates}
        for job in candidates:
            if job.listing_id in claimed:
                report.skipped[job.id] = "another job of this listing is being recovered"
                continue
            busy = [other for other in self.job_store.list_processing_by_listing(job.listing_id)
                    if other.id not in candidate_ids]
            if busy:
                report.skipped[job.id] = f"listing already processing job {busy[0].id}"
                continue
            claimed.add(job.listing_id)
            selected.append(job)
        return selected

    async def run(self) -> RecoveryReport:
        report = RecoveryReport()
        selected = self.select(self.find_candidates(), report)
        for job_id, reason in report.skipped.items():
            logger.info(f"Skipping recovery of job {job_id}: {reason}")

        if not selected:
            logger.info("No jobs to recover")
            return report

        report.resubmitted = [job.id for job in selected]
        logger.info(f"Resubmitting {len(selected)} interrupted jobs",
                    extra={"job_ids": [job.id for job in selected]})
        results = await asyncio.gather(
            *(self.orchestrator.execute(job) for job in selected),
            return_exceptions=True,
        )
        for job, result in zip(selected, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                report.failed[job.id] = str(result) or result.__class__.__name__
                logger.error(f"Recovered job {job.id} failed: {result}")

        logger.info("Recovery pass complete", extra={
            "resubmitted": len(report.resubmitted),
            "skipped": len(report.skipped),
            "failed": len(report.failed),
        })
        return report
