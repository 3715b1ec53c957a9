"""
Flyover capture client - renders an aerial zoom onto the listing's location.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from reelgen.core import SynthesisFailed, get_logger
from reelgen.models import ClipArtifact, Coordinates
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

logger = get_logger(__name__, component="flyover_client")

FLYOVER_INDEX = -1


@dataclass
class FlyoverRequest:
    coordinates: Coordinates
    duration: float = 3.0


class HttpFlyoverService(TaskService):
    """Aerial render service keyed by coordinates."""

    def __init__(self, base_url: str, api_key: Optional[str], timeout: float = 60.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        params = {"key": self.api_key} if self.api_key else None
        return httpx.AsyncClient(base_url=self.base_url, params=params,
                                 timeout=self.timeout, transport=self._transport)

    async def submit_task(self, payload: FlyoverRequest) -> str:
        async with self._client() as client:
            response = await client.post("/v1/videos:renderVideo", json={
                "location": {"lat": payload.coordinates.lat, "lng": payload.coordinates.lng},
                "durationSeconds": payload.duration,
            })
        raise_for_vendor_status(response, "renderVideo")
        task_id = response.json().get("videoId") or response.json().get("id")
        if not task_id:
            raise SynthesisFailed("renderVideo response carried no video id")
        return task_id

    async def poll_task(self, task_id: str) -> TaskStatus:
        async with self._client() as client:
            response = await client.get("/v1/videos:lookupVideo", params={"videoId": task_id})
        raise_for_vendor_status(response, "lookupVideo")
        body = response.json()
        uris: Dict[str, Any] = body.get("uris") or {}
        portrait = uris.get("MP4_HIGH") or uris.get("MP4_MEDIUM") or {}
        return TaskStatus(
            status=normalize_status(body.get("state") or body.get("status")),
            output_ref=portrait.get("portraitUri") or portrait.get("landscapeUri") or body.get("output"),
            error=body.get("error"),
        )

    async def fetch_output(self, output_ref: str) -> bytes:
        async with httpx.AsyncClient(timeout=600.0, transport=self._transport) as client:
            response = await client.get(output_ref)
        raise_for_vendor_status(response, "flyover download")
        return response.content


def flyover_storage_key(listing_id: str, job_id: str) -> str:
    return f"maps/{listing_id}/{job_id}/flyover.mp4"


class FlyoverCaptureClient(PollingClient):

    def __init__(self, service: TaskService, object_store: ObjectStore, retry, work_dir: Path,
                 duration: float = 3.0, **polling):
        super().__init__(service, retry, **polling)
        self.object_store = object_store
        self.work_dir = Path(work_dir)
        self.duration = duration

    def cache_params(self) -> Dict[str, Any]:
        return {"duration": self.duration}

    async def capture(
        self,
        coordinates: Coordinates,
        *,
        job_id: str,
        listing_id: str,
        tracker: ResourceTracker,
    ) -> ClipArtifact:
        local_path = tracker.track(self.work_dir / job_id / "flyover.mp4")
        await self.run_task(FlyoverRequest(coordinates, self.duration), local_path)

        location = await self.retry.run(
            lambda: self.object_store.put_file(local_path, flyover_storage_key(listing_id, job_id), "video/mp4"),
            description="upload flyover clip",
            retry_on=TRANSIENT_ERRORS,
        )
        logger.info("Flyover clip captured", extra={"location": location})
        return ClipArtifact(
            index=FLYOVER_INDEX,
            source=f"{coordinates.lat},{coordinates.lng}",
            local_path=local_path,
            location=location,
        )
