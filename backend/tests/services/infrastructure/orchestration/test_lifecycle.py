"""
Tests for reelgen.services.infrastructure.orchestration.lifecycle
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reelgen.core import InfrastructureError
from reelgen.services.infrastructure.orchestration import PipelineLifecycle, RecoveryReport

MODULE = "reelgen.services.infrastructure.orchestration.lifecycle"


@pytest.fixture
def recovery():
    recovery = MagicMock()
    recovery.run = AsyncMock(return_value=RecoveryReport(resubmitted=["j1"]))
    return recovery


@pytest.fixture
def cache():
    cache = MagicMock()
    cache.purge_expired = AsyncMock(return_value=0)
    return cache


@pytest.mark.asyncio
class TestPipelineLifecycle:

    async def test_startup_checks_recovers_and_starts_sweep(self, settings, recovery, cache):
        lifecycle = PipelineLifecycle(settings, recovery, cache)

        with patch("shutil.which", return_value="/usr/bin/ffmpeg"):
            await lifecycle.startup()
        await asyncio.sleep(0)

        assert lifecycle.runtime_report["ok"] is True
        assert settings.work_dir.is_dir()
        assert lifecycle.recovery_report.resubmitted == ["j1"]
        cache.purge_expired.assert_awaited()

        await lifecycle.shutdown()
        assert lifecycle._purge_task is None

    async def test_recovery_can_be_skipped(self, settings, recovery, cache):
        lifecycle = PipelineLifecycle(settings, recovery, cache)

        with patch("shutil.which", return_value="/usr/bin/ffmpeg"):
            await lifecycle.startup(recover=False)

        recovery.run.assert_not_awaited()
        await lifecycle.shutdown()

    async def test_strict_checks_fail_without_ffmpeg(self, settings, recovery, cache):
        lifecycle = PipelineLifecycle(settings.with_overrides(strict_runtime_checks=True), recovery, cache)

        with patch("shutil.which", return_value=None):
            with pytest.raises(InfrastructureError, match="ffmpeg"):
                await lifecycle.startup()
        recovery.run.assert_not_awaited()

    async def test_missing_tools_are_reported_when_not_strict(self, settings, recovery, cache):
        lifecycle = PipelineLifecycle(settings, recovery, cache)

        with patch("shutil.which", return_value=None):
            await lifecycle.startup(recover=False)

        assert lifecycle.runtime_report["ok"] is False
        assert lifecycle.runtime_report["tools"]["missing"] == ["ffmpeg"]
        await lifecycle.shutdown()

    async def test_purge_errors_do_not_stop_the_loop(self, settings, recovery, cache):
        cache.purge_expired = AsyncMock(side_effect=[RuntimeError("disk"), 0, 0])
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) >= 2:
                raise asyncio.CancelledError()

        lifecycle = PipelineLifecycle(settings.with_overrides(cache_purge_interval_minutes=2), recovery, cache)
        with patch(f"{MODULE}.asyncio.sleep", side_effect=fake_sleep):
            with pytest.raises(asyncio.CancelledError):
                await lifecycle.run_cache_purge()

        assert cache.purge_expired.await_count == 2
        assert sleeps == [120, 120]

    async def test_shutdown_without_startup(self, settings, recovery, cache):
        await PipelineLifecycle(settings, recovery, cache).shutdown()
