"""
Tests for the HTTP vendor adapters and the synthesis / flyover clients
"""

import base64
import json

import httpx
import pytest

from reelgen.core import ServiceUnavailable, StorageError, SynthesisFailed
from reelgen.models import Coordinates
from reelgen.services.clients import (
    FAILED,
    PENDING,
    SUCCEEDED,
    FlyoverCaptureClient,
    HttpFlyoverService,
    HttpSynthesisService,
    VideoSynthesisClient,
)
from reelgen.services.clients.flyover import FLYOVER_INDEX, FlyoverRequest
from reelgen.services.clients.synthesis import SynthesisRequest, clip_storage_key
from reelgen.services.infrastructure.resources import ResourceTracker


async def _no_sleep(_seconds):
    return None


def _transport(handler, seen):
    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(_record)


@pytest.mark.asyncio
class TestHttpSynthesisService:

    async def test_submit_sends_image_as_data_url(self):
        seen = []
        service = HttpSynthesisService(
            "https://api.vendor.test/", "secret",
            transport=_transport(lambda r: httpx.Response(200, json={"id": "task-9"}), seen),
        )

        task_id = await service.submit_task(SynthesisRequest(image=b"jpeg", content_type="image/jpeg"))

        assert task_id == "task-9"
        request = seen[0]
        assert request.url == "https://api.vendor.test/v1/image_to_video"
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["X-Runway-Version"] == "2024-11-06"
        body = json.loads(request.content)
        assert body["promptImage"] == "data:image/jpeg;base64," + base64.b64encode(b"jpeg").decode()
        assert body["model"] == "gen3a_turbo"
        assert body["ratio"] == "768:1280"
        assert body["duration"] == 5

    async def test_submit_without_task_id(self):
        service = HttpSynthesisService(
            "https://api.vendor.test", None,
            transport=_transport(lambda r: httpx.Response(200, json={}), []),
        )

        with pytest.raises(SynthesisFailed):
            await service.submit_task(SynthesisRequest(image=b"x", content_type="image/png"))

    async def test_submit_rate_limited(self):
        service = HttpSynthesisService(
            "https://api.vendor.test", None,
            transport=_transport(lambda r: httpx.Response(429, text="too many"), []),
        )

        with pytest.raises(ServiceUnavailable):
            await service.submit_task(SynthesisRequest(image=b"x", content_type="image/png"))

    @pytest.mark.parametrize("body,expected", [
        ({"status": "RUNNING"}, (PENDING, None, None)),
        ({"status": "SUCCEEDED", "output": ["https://cdn/x.mp4"]}, (SUCCEEDED, "https://cdn/x.mp4", None)),
        ({"status": "FAILED", "failure": "nsfw"}, (FAILED, None, "nsfw")),
    ])
    async def test_poll(self, body, expected):
        seen = []
        service = HttpSynthesisService(
            "https://api.vendor.test", None,
            transport=_transport(lambda r: httpx.Response(200, json=body), seen),
        )

        status = await service.poll_task("task-9")

        assert seen[0].url.path == "/v1/tasks/task-9"
        assert (status.status, status.output_ref, status.error) == expected

    async def test_fetch_output(self):
        service = HttpSynthesisService(
            "https://api.vendor.test", None,
            transport=_transport(lambda r: httpx.Response(200, content=b"mp4"), []),
        )

        assert await service.fetch_output("https://cdn/x.mp4") == b"mp4"


@pytest.mark.asyncio
class TestHttpFlyoverService:

    async def test_submit_and_poll(self):
        seen = []

        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"videoId": "v-1"})
            return httpx.Response(200, json={
                "state": "ACTIVE",
                "uris": {"MP4_HIGH": {"portraitUri": "https://cdn/fly.mp4"}},
            })

        service = HttpFlyoverService("https://maps.test", "key-1", transport=_transport(handler, seen))

        task_id = await service.submit_task(FlyoverRequest(Coordinates(40.7, -74.0)))
        status = await service.poll_task(task_id)

        assert task_id == "v-1"
        assert json.loads(seen[0].content) == {"location": {"lat": 40.7, "lng": -74.0}, "durationSeconds": 3.0}
        assert seen[0].url.params["key"] == "key-1"
        assert seen[1].url.params["videoId"] == "v-1"
        assert status.status == SUCCEEDED
        assert status.output_ref == "https://cdn/fly.mp4"

    async def test_processing_state_is_pending(self):
        service = HttpFlyoverService(
            "https://maps.test", None,
            transport=_transport(lambda r: httpx.Response(200, json={"state": "PROCESSING"}), []),
        )

        assert (await service.poll_task("v-1")).status == PENDING


@pytest.mark.asyncio
class TestVideoSynthesisClient:

    async def test_generate_clip_uploads_to_listing_path(self, synthesis_service, object_store, retry, tmp_path):
        await object_store.put(b"photo-0", "uploads/l1/photo_0.jpg")
        client = VideoSynthesisClient(synthesis_service, object_store, retry, tmp_path / "work",
                                      poll_interval=0, sleep=_no_sleep)

        with ResourceTracker("job-1") as tracker:
            artifact = await client.generate_clip(
                "uploads/l1/photo_0.jpg", 0, job_id="job-1", listing_id="l1", tracker=tracker,
            )
            assert artifact.local_path.exists()

        assert artifact.location == clip_storage_key("l1", "job-1", 0)
        assert (await object_store.get(artifact.location)).startswith(b"video:photo-0")
        assert synthesis_service.submitted == [b"photo-0"]
        assert not artifact.local_path.exists()

    async def test_missing_source_image(self, synthesis_service, object_store, retry, tmp_path):
        client = VideoSynthesisClient(synthesis_service, object_store, retry, tmp_path, poll_interval=0,
                                      sleep=_no_sleep)

        with pytest.raises(StorageError):
            await client.generate_clip("uploads/none.jpg", 0, job_id="j", listing_id="l",
                                       tracker=ResourceTracker())
        assert synthesis_service.submitted == []


class TestSynthesisCacheParams:

    def test_cache_params_reflect_settings(self, synthesis_service, object_store, retry, tmp_path):
        client = VideoSynthesisClient(synthesis_service, object_store, retry, tmp_path, model="gen4", duration=10)

        assert client.cache_params() == {
            "prompt": "Move forward slowly", "model": "gen4", "duration": 10, "ratio": "768:1280",
        }


@pytest.mark.asyncio
class TestFlyoverCaptureClient:

    async def test_capture(self, flyover_service, object_store, retry, tmp_path):
        client = FlyoverCaptureClient(flyover_service, object_store, retry, tmp_path, poll_interval=0,
                                      sleep=_no_sleep)

        artifact = await client.capture(Coordinates(1.5, 2.5), job_id="j", listing_id="l",
                                        tracker=ResourceTracker())

        assert artifact.index == FLYOVER_INDEX
        assert artifact.location == "maps/l/j/flyover.mp4"
        assert artifact.source == "1.5,2.5"
        assert await object_store.exists(artifact.location)
