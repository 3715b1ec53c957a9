"""
Artifact cache.

Maps cache keys to artifacts already sitting in durable storage so that
expensive synthesis calls are skipped when the same inputs come back.
Entries expire after a short window, or a long one once they have been
hit often enough. An entry whose backing object disappeared is dropped on
the next lookup.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from reelgen.core import StorageError, get_logger
from reelgen.models import AssetType, ProcessedAsset, parse_timestamp, utc_now
from reelgen.services.infrastructure.storage import AssetRepository, ObjectStore

from .keys import content_hash

logger = get_logger(__name__, component="asset_cache")


class AssetCache:

    def __init__(
        self,
        repository: AssetRepository,
        object_store: ObjectStore,
        short_ttl: timedelta = timedelta(hours=24),
        long_ttl: timedelta = timedelta(days=7),
        frequent_threshold: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.object_store = object_store
        self.short_ttl = short_ttl
        self.long_ttl = long_ttl
        self.frequent_threshold = frequent_threshold
        self._clock = clock
        self._lock = asyncio.Lock()

    def ttl_for(self, asset: ProcessedAsset) -> timedelta:
        if asset.access_count >= self.frequent_threshold:
            return self.long_ttl
        return self.short_ttl

    def is_expired(self, asset: ProcessedAsset, now: Optional[datetime] = None) -> bool:
        created = parse_timestamp(asset.created_at)
        if created is None:
            return True
        return (now or self._clock()) - created > self.ttl_for(asset)

    async def _backing_exists(self, asset: ProcessedAsset) -> bool:
        try:
            return await self.object_store.exists(asset.location)
        except StorageError as exc:
            logger.warning(
                "Could not verify cached object, treating as missing",
                extra={"cache_key": asset.cache_key, "error": str(exc)},
            )
            return False

    async def get(self, cache_key: str) -> Optional[ProcessedAsset]:
        asset = self.repository.get(cache_key)
        if asset is None:
            return None

        if self.is_expired(asset):
            self.repository.delete(cache_key)
            logger.info("Cache entry expired", extra={"cache_key": cache_key})
            return None

        if not await self._backing_exists(asset):
            self.repository.delete(cache_key)
            logger.warning(
                "Cache entry points at a missing object",
                extra={"cache_key": cache_key, "location": asset.location},
            )
            return None

        async with self._lock:
            asset.access_count += 1
            asset.last_accessed = self._clock().isoformat()
            self.repository.upsert(asset)

        logger.debug("Cache hit", extra={"cache_key": cache_key, "access_count": asset.access_count})
        return asset

    async def put(
        self,
        cache_key: str,
        location: str,
        asset_type: AssetType,
        metadata: Optional[Dict[str, Any]] = None,
        content: Optional[bytes] = None,
    ) -> ProcessedAsset:
        """
        Insert or replace the entry for ``cache_key``.

        The content hash is recomputed from ``content`` when given, otherwise
        from the object read back from durable storage.
        """
        if content is None:
            content = await self.object_store.get(location)
        digest = content_hash(content)
        now = self._clock().isoformat()

        async with self._lock:
            previous = self.repository.get(cache_key)
            asset = ProcessedAsset(
                cache_key=cache_key,
                asset_type=AssetType(asset_type),
                location=location,
                content_hash=digest,
                created_at=now,
                last_accessed=now,
                access_count=previous.access_count if previous else 0,
                metadata=dict(metadata or {}),
            )
            self.repository.upsert(asset)

        logger.debug("Cached artifact", extra={"cache_key": cache_key, "location": location})
        return asset

    async def purge_expired(self) -> int:
        """Evict every expired or orphaned entry. Returns the number evicted."""
        now = self._clock()
        evicted = 0
        for asset in self.repository.list_all():
            if self.is_expired(asset, now) or not await self._backing_exists(asset):
                if self.repository.delete(asset.cache_key):
                    evicted += 1
        if evicted:
            logger.info(f"Purged {evicted} cache entries", extra={"evicted": evicted})
        return evicted
