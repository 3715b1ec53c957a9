"""
Process lifecycle: startup checks, job recovery and the cache sweep loop.
"""

import asyncio
from typing import Any, Dict, Optional

from reelgen.config import Settings
from reelgen.core import get_logger, run_startup_runtime_checks
from reelgen.services.infrastructure.cache import AssetCache

from .recovery import RecoveryReport, RecoveryScanner

logger = get_logger(__name__, component="lifecycle")


class PipelineLifecycle:

    def __init__(self, settings: Settings, recovery: RecoveryScanner, cache: AssetCache):
        self.settings = settings
        self.recovery = recovery
        self.cache = cache
        self.runtime_report: Optional[Dict[str, Any]] = None
        self.recovery_report: Optional[RecoveryReport] = None
        self._purge_task: Optional[asyncio.Task] = None

    async def startup(self, recover: bool = True) -> None:
        """Verify the runtime, start the cache sweep and recover interrupted jobs."""
        self.runtime_report = run_startup_runtime_checks(
            work_dir=self.settings.work_dir,
            data_dir=self.settings.data_dir,
            strict_tools=self.settings.strict_runtime_checks,
        )
        logger.info("Startup runtime checks complete", extra={"runtime_report": self.runtime_report})

        self._purge_task = asyncio.create_task(self.run_cache_purge())

        if recover:
            self.recovery_report = await self.recovery.run()

    async def run_cache_purge(self) -> None:
        """Periodically evict expired or orphaned cache entries."""
        interval_seconds = self.settings.cache_purge_interval_minutes * 60
        while True:
            try:
                await self.cache.purge_expired()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Cache purge failed", extra={"error": str(exc)}, exc_info=True)
            await asyncio.sleep(interval_seconds)

    async def shutdown(self) -> None:
        if self._purge_task:
            self._purge_task.cancel()
            try:
                await self._purge_task
            except asyncio.CancelledError:
                pass
            self._purge_task = None
