"""
Process-wide service wiring.

``get_services()`` builds every collaborator once per process from
``Settings.from_env()``. Tests call ``reset_services()`` or build their own
``PipelineServices`` with ``build_services(settings)``.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from reelgen.config import Settings, TemplateRegistry
from reelgen.core import get_logger, setup_logging
from reelgen.services.clients import (
    FlyoverCaptureClient,
    HttpFlyoverService,
    HttpSynthesisService,
    VideoSynthesisClient,
)
from reelgen.services.infrastructure.cache import AssetCache
from reelgen.services.infrastructure.orchestration import FileJobStore, PipelineLifecycle, RecoveryScanner
from reelgen.services.infrastructure.retry import RetryExecutor
from reelgen.services.infrastructure.storage import (
    FileAssetRepository,
    FileListingDirectory,
    JobStore,
    ObjectStore,
    create_object_store,
)
from reelgen.services.pipeline.assembly import PipelineOrchestrator, RegenerationService, TemplateComposer

logger = get_logger(__name__, component="registry")


@dataclass
class PipelineServices:
    settings: Settings
    job_store: JobStore
    object_store: ObjectStore
    cache: AssetCache
    registry: TemplateRegistry
    orchestrator: PipelineOrchestrator
    regeneration: RegenerationService
    recovery: RecoveryScanner
    lifecycle: PipelineLifecycle


def build_services(settings: Settings, object_store: Optional[ObjectStore] = None) -> PipelineServices:
    retry = RetryExecutor(
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )
    object_store = object_store or create_object_store(settings)
    job_store = FileJobStore(settings.jobs_dir)
    cache = AssetCache(
        FileAssetRepository(settings.assets_index_file),
        object_store,
        short_ttl=timedelta(hours=settings.cache_short_ttl_hours),
        long_ttl=timedelta(hours=settings.cache_long_ttl_hours),
        frequent_threshold=settings.cache_frequent_threshold,
    )
    registry = (
        TemplateRegistry.from_file(settings.template_config_file)
        if settings.template_config_file else TemplateRegistry()
    )
    polling = {
        "poll_interval": settings.poll_interval_seconds,
        "max_poll_attempts": settings.max_poll_attempts,
    }
    synthesis = VideoSynthesisClient(
        HttpSynthesisService(settings.synthesis_api_url, settings.synthesis_api_key,
                             timeout=settings.http_timeout_seconds),
        object_store,
        retry,
        settings.work_dir,
        model=settings.synthesis_model,
        duration=settings.synthesis_clip_seconds,
        ratio=settings.synthesis_ratio,
        **polling,
    )
    flyover = FlyoverCaptureClient(
        HttpFlyoverService(settings.flyover_api_url, settings.flyover_api_key,
                           timeout=settings.http_timeout_seconds),
        object_store,
        retry,
        settings.work_dir,
        **polling,
    )
    orchestrator = PipelineOrchestrator(
        job_store=job_store,
        object_store=object_store,
        cache=cache,
        synthesis=synthesis,
        flyover=flyover,
        composer=TemplateComposer(settings.music_dir),
        registry=registry,
        listings=FileListingDirectory(settings.listings_file),
        settings=settings,
        retry=retry,
    )
    recovery = RecoveryScanner(
        job_store,
        orchestrator,
        window=timedelta(hours=settings.recovery_window_hours),
        batch_limit=settings.recovery_batch_limit,
        include_processing=settings.recovery_include_processing,
    )
    return PipelineServices(
        settings=settings,
        job_store=job_store,
        object_store=object_store,
        cache=cache,
        registry=registry,
        orchestrator=orchestrator,
        regeneration=RegenerationService(job_store, orchestrator),
        recovery=recovery,
        lifecycle=PipelineLifecycle(settings, recovery, cache),
    )


_services_instance: Optional[PipelineServices] = None


def get_services() -> PipelineServices:
    """Get the shared PipelineServices instance (singleton pattern)."""
    global _services_instance
    if _services_instance is None:
        settings = Settings.from_env()
        setup_logging(settings.log_level, settings.log_file, settings.log_json)
        _services_instance = build_services(settings)
        logger.info("Pipeline services initialized", extra={"storage_backend": settings.storage_backend})
    return _services_instance


def reset_services() -> None:
    global _services_instance
    _services_instance = None
