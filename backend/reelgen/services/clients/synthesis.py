"""
Video synthesis client - turns one still photo into a short motion clip.
"""

import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from reelgen.core import SynthesisFailed, get_logger
from reelgen.models import ClipArtifact
from reelgen.services.infrastructure.resources import ResourceTracker
from reelgen.services.infrastructure.storage import ObjectStore

from .base import (
    TRANSIENT_ERRORS,
    PollingClient,
    TaskService,
    TaskStatus,
    normalize_status,
    raise_for_vendor_status,
)

logger = get_logger(__name__, component="synthesis_client")

RUNWAY_API_VERSION = "2024-11-06"


@dataclass
class SynthesisRequest:
    image: bytes
    content_type: str
    prompt: str = "Move forward slowly"
    model: str = "gen3a_turbo"
    duration: int = 5
    ratio: str = "768:1280"


class HttpSynthesisService(TaskService):
    """Image-to-video REST API (Runway-compatible task endpoints)."""

    def __init__(self, base_url: str, api_key: Optional[str], timeout: float = 60.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"X-Runway-Version": RUNWAY_API_VERSION}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def submit_task(self, payload: SynthesisRequest) -> str:
        data_url = f"data:{payload.content_type};base64,{base64.b64encode(payload.image).decode('ascii')}"
        async with self._client() as client:
            response = await client.post("/v1/image_to_video", json={
                "model": payload.model,
                "promptImage": data_url,
                "promptText": payload.prompt,
                "duration": payload.duration,
                "ratio": payload.ratio,
            })
        raise_for_vendor_status(response, "image_to_video")
        task_id = response.json().get("id")
        if not task_id:
            raise SynthesisFailed("image_to_video response carried no task id")
        return task_id

    async def poll_task(self, task_id: str) -> TaskStatus:
        async with self._client() as client:
            response = await client.get(f"/v1/tasks/{task_id}")
        raise_for_vendor_status(response, "task status")
        body = response.json()
        outputs = body.get("output") or []
        return TaskStatus(
            status=normalize_status(body.get("status")),
            output_ref=outputs[0] if outputs else None,
            error=body.get("failure") or body.get("failureCode"),
        )

    async def fetch_output(self, output_ref: str) -> bytes:
        async with httpx.AsyncClient(timeout=600.0, transport=self._transport) as client:
            response = await client.get(output_ref)
        raise_for_vendor_status(response, "output download")
        return response.content


def clip_storage_key(listing_id: str, job_id: str, index: int) -> str:
    return f"properties/{listing_id}/videos/clips/{job_id}/segment_{index}.mp4"


class VideoSynthesisClient(PollingClient):

    def __init__(self, service: TaskService, object_store: ObjectStore, retry, work_dir: Path,
                 prompt: str = "Move forward slowly", model: str = "gen3a_turbo",
                 duration: int = 5, ratio: str = "768:1280", **polling):
        super().__init__(service, retry, **polling)
        self.object_store = object_store
        self.work_dir = Path(work_dir)
        self.prompt = prompt
        self.model = model
        self.duration = duration
        self.ratio = ratio

    def cache_params(self) -> Dict[str, Any]:
        return {"prompt": self.prompt, "model": self.model, "duration": self.duration, "ratio": self.ratio}

    async def generate_clip(
        self,
        image_ref: str,
        index: int,
        *,
        job_id: str,
        listing_id: str,
        tracker: ResourceTracker,
    ) -> ClipArtifact:
        """
        Synthesize a motion clip for ``image_ref`` and upload it.

        Raises:
            SynthesisFailed: The vendor rejected or failed the task
            SynthesisTimeout: The task did not finish within the polling bound
            StorageError: Source download or clip upload failed after retries
        """
        image = await self.retry.run(
            lambda: self.object_store.get(image_ref),
            description=f"read source image {index}",
            retry_on=TRANSIENT_ERRORS,
        )
        content_type = mimetypes.guess_type(image_ref)[0] or "image/jpeg"
        request = SynthesisRequest(
            image=image,
            content_type=content_type,
            prompt=self.prompt,
            model=self.model,
            duration=self.duration,
            ratio=self.ratio,
        )

        local_path = tracker.track(self.work_dir / job_id / "clips" / f"segment_{index}.mp4")
        await self.run_task(request, local_path)

        key = clip_storage_key(listing_id, job_id, index)
        location = await self.retry.run(
            lambda: self.object_store.put_file(local_path, key, "video/mp4"),
            description=f"upload clip {index}",
            retry_on=TRANSIENT_ERRORS,
        )
        logger.info(f"Clip {index} synthesized", extra={"index": index, "location": location})
        return ClipArtifact(index=index, source=image_ref, local_path=local_path, location=location)
