"""
Shared submit / poll / download protocol for long-running vendor tasks.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx

from reelgen.core import (
    ServiceUnavailable,
    StorageError,
    SynthesisFailed,
    SynthesisTimeout,
    get_logger,
)
from reelgen.services.infrastructure.retry import Backoff, RetryExecutor

logger = get_logger(__name__, component="polling_client")

PENDING = "pending"
SUCCEEDED = "succeeded"
FAILED = "failed"

_FAILED_VENDOR_STATUSES = {"FAILED", "CANCELLED", "CANCELED", "TIMEOUT", "ERROR"}
_SUCCEEDED_VENDOR_STATUSES = {"SUCCEEDED", "SUCCESS", "COMPLETED", "ACTIVE"}

RETRYABLE_STATUS_CODES = {429, 502, 503, 504}

TRANSIENT_ERRORS = (ServiceUnavailable, StorageError, httpx.TransportError)


def normalize_status(vendor_status: Optional[str]) -> str:
    value = (vendor_status or "").strip().upper()
    if value in _SUCCEEDED_VENDOR_STATUSES:
        return SUCCEEDED
    if value in _FAILED_VENDOR_STATUSES:
        return FAILED
    return PENDING


@dataclass
class TaskStatus:
    status: str
    output_ref: Optional[str] = None
    error: Optional[str] = None


def raise_for_vendor_status(response: httpx.Response, operation: str) -> None:
    """Map HTTP errors to retryable or terminal pipeline errors."""
    if response.is_success:
        return
    detail = response.text[:300]
    if response.status_code in RETRYABLE_STATUS_CODES or response.status_code >= 500:
        raise ServiceUnavailable(f"{operation} returned {response.status_code}: {detail}", response.status_code)
    raise SynthesisFailed(f"{operation} rejected with {response.status_code}: {detail}")


class TaskService(ABC):
    """Vendor adapter for an asynchronous render task."""

    @abstractmethod
    async def submit_task(self, payload) -> str:
        pass

    @abstractmethod
    async def poll_task(self, task_id: str) -> TaskStatus:
        pass

    @abstractmethod
    async def fetch_output(self, output_ref: str) -> bytes:
        pass


class PollingClient:
    """Drives a TaskService: submit, poll until done, fetch.

    Every network call is retried on transient errors; polling is bounded
    by ``max_poll_attempts``.
    """

    def __init__(
        self,
        service: TaskService,
        retry: RetryExecutor,
        poll_interval: float = 10.0,
        max_poll_attempts: int = 30,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.service = service
        self.retry = retry
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self._sleep = sleep

    async def wait_for_completion(self, task_id: str) -> TaskStatus:
        for attempt in range(1, self.max_poll_attempts + 1):
            await self._sleep(self.poll_interval)
            status = await self.retry.run(
                lambda: self.service.poll_task(task_id),
                backoff=Backoff.EXPONENTIAL_JITTER,
                description=f"poll task {task_id}",
                retry_on=TRANSIENT_ERRORS,
            )
            logger.debug(
                "Task status",
                extra={"task_id": task_id, "status": status.status, "attempt": attempt},
            )
            if status.status == SUCCEEDED:
                return status
            if status.status == FAILED:
                raise SynthesisFailed(status.error or f"Task {task_id} failed")

        raise SynthesisTimeout(task_id, self.max_poll_attempts)

    async def run_task(self, payload, output_path: Path) -> Path:
        """Submit ``payload``, wait for the result and write it to ``output_path``."""
        task_id = await self.retry.run(
            lambda: self.service.submit_task(payload),
            backoff=Backoff.EXPONENTIAL_JITTER,
            description="submit task",
            retry_on=TRANSIENT_ERRORS,
        )
        logger.info("Task submitted", extra={"task_id": task_id})

        status = await self.wait_for_completion(task_id)
        if not status.output_ref:
            raise SynthesisFailed(f"Task {task_id} succeeded without output")

        data = await self.retry.run(
            lambda: self.service.fetch_output(status.output_ref),
            description=f"download output of {task_id}",
            retry_on=TRANSIENT_ERRORS,
        )
        if not data:
            raise SynthesisFailed(f"Task {task_id} produced an empty output")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(output_path.write_bytes, data)
        return output_path
