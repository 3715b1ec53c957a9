import itertools
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from reelgen.config import Settings, TemplateRegistry
from reelgen.core import TemplateCompositionFailed
from reelgen.services.clients import (
    FAILED,
    PENDING,
    SUCCEEDED,
    FlyoverCaptureClient,
    TaskService,
    TaskStatus,
    VideoSynthesisClient,
)
from reelgen.services.infrastructure.cache import AssetCache
from reelgen.services.infrastructure.orchestration import FileJobStore
from reelgen.services.infrastructure.retry import RetryExecutor
from reelgen.services.infrastructure.storage import FileAssetRepository, LocalObjectStore
from reelgen.services.pipeline.assembly import PipelineOrchestrator, TemplateComposer


async def _no_sleep(_seconds: float) -> None:
    return None


class FakeTaskService(TaskService):
    """In-memory vendor: every task succeeds after ``pending_polls`` polls
    unless its payload is listed in ``fail_payloads``."""

    def __init__(self, fail_payloads: Optional[Set[bytes]] = None, pending_polls: int = 0):
        self.fail_payloads = fail_payloads or set()
        self.pending_polls = pending_polls
        self.submitted: List[bytes] = []
        self._ids = itertools.count(1)
        self._tasks: Dict[str, dict] = {}

    @staticmethod
    def _payload_key(payload) -> bytes:
        image = getattr(payload, "image", None)
        if image is not None:
            return image
        return repr(payload).encode()

    async def submit_task(self, payload) -> str:
        key = self._payload_key(payload)
        self.submitted.append(key)
        task_id = f"task-{next(self._ids)}"
        self._tasks[task_id] = {"key": key, "polls": 0}
        return task_id

    async def poll_task(self, task_id: str) -> TaskStatus:
        task = self._tasks[task_id]
        task["polls"] += 1
        if task["key"] in self.fail_payloads:
            return TaskStatus(FAILED, error="vendor rejected the image")
        if task["polls"] <= self.pending_polls:
            return TaskStatus(PENDING)
        return TaskStatus(SUCCEEDED, output_ref=f"https://vendor.test/{task_id}.mp4")

    async def fetch_output(self, output_ref: str) -> bytes:
        task_id = output_ref.rsplit("/", 1)[-1].removesuffix(".mp4")
        return b"video:" + self._tasks[task_id]["key"] + b":" + task_id.encode()


class FakeComposer(TemplateComposer):
    """Plans with the real slot logic, then writes a marker file instead of running ffmpeg."""

    def __init__(self, fail_templates: Optional[Set[str]] = None):
        super().__init__(music_dir=None)
        self.fail_templates = fail_templates or set()
        self.calls: List[dict] = []

    async def compose(self, spec, clip_paths, flyover_path, output_path, tracker):
        plan = self.plan(spec, clip_paths, flyover_path)
        self.calls.append({
            "template": spec.name,
            "clips": [Path(p) for p in clip_paths],
            "flyover": flyover_path,
        })
        if spec.name in self.fail_templates:
            raise TemplateCompositionFailed(spec.name, "ffmpeg exited with status 1")
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        parts = [Path(p.path).read_bytes() for p in plan]
        output_path.write_bytes(spec.name.encode() + b"|" + b"|".join(parts))
        return output_path


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        work_dir=tmp_path / "work",
        data_dir=tmp_path / "data",
        storage_dir=tmp_path / "storage",
        music_dir=tmp_path / "music",
        poll_interval_seconds=0,
        max_poll_attempts=5,
        retry_max_attempts=2,
        retry_base_delay_seconds=0,
        retry_max_delay_seconds=0,
        default_templates=("crescendo", "wave", "storyteller"),
    )


@pytest.fixture
def object_store(settings) -> LocalObjectStore:
    return LocalObjectStore(settings.storage_dir)


@pytest.fixture
def job_store(settings) -> FileJobStore:
    return FileJobStore(settings.jobs_dir)


@pytest.fixture
def asset_cache(settings, object_store) -> AssetCache:
    return AssetCache(FileAssetRepository(settings.assets_index_file), object_store)


@pytest.fixture
def retry() -> RetryExecutor:
    return RetryExecutor(max_attempts=2, base_delay=0, max_delay=0, sleep=_no_sleep)


@pytest.fixture
def synthesis_service() -> FakeTaskService:
    return FakeTaskService()


@pytest.fixture
def flyover_service() -> FakeTaskService:
    return FakeTaskService()


@pytest.fixture
def composer() -> FakeComposer:
    return FakeComposer()


@pytest.fixture
def photos(object_store):
    """Upload five listing photos and return their storage keys."""

    async def _upload(count: int = 5, listing_id: str = "listing-1") -> List[str]:
        keys = []
        for index in range(count):
            keys.append(await object_store.put(
                f"photo-{index}".encode(), f"uploads/{listing_id}/photo_{index}.jpg", "image/jpeg",
            ))
        return keys

    return _upload


@pytest.fixture
def make_orchestrator(settings, job_store, object_store, asset_cache, retry,
                      synthesis_service, flyover_service, composer):
    def _build(listings=None, registry=None, **overrides) -> PipelineOrchestrator:
        polling = {"poll_interval": 0, "max_poll_attempts": 5, "sleep": _no_sleep}
        synthesis = VideoSynthesisClient(
            overrides.pop("synthesis_service", synthesis_service),
            object_store, retry, settings.work_dir, **polling,
        )
        flyover = FlyoverCaptureClient(
            overrides.pop("flyover_service", flyover_service),
            object_store, retry, settings.work_dir, **polling,
        )
        return PipelineOrchestrator(
            job_store=job_store,
            object_store=object_store,
            cache=asset_cache,
            synthesis=synthesis,
            flyover=flyover,
            composer=overrides.pop("composer", composer),
            registry=registry or TemplateRegistry(),
            listings=listings,
            settings=overrides.pop("settings", settings),
            retry=retry,
        )

    return _build
