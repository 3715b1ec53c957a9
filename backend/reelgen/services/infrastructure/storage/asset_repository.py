"""
Processed asset repository - persistence for artifact cache entries.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional

from reelgen.core import get_logger
from reelgen.models import ProcessedAsset

logger = get_logger(__name__, component="asset_repository")


class AssetRepository(ABC):

    @abstractmethod
    def get(self, cache_key: str) -> Optional[ProcessedAsset]:
        pass

    @abstractmethod
    def upsert(self, asset: ProcessedAsset) -> ProcessedAsset:
        pass

    @abstractmethod
    def delete(self, cache_key: str) -> bool:
        pass

    @abstractmethod
    def list_all(self) -> List[ProcessedAsset]:
        pass


class FileAssetRepository(AssetRepository):
    """All entries in one JSON index file, rewritten on every change."""

    def __init__(self, index_file: Path):
        self.index_file = Path(index_file)
        self.index_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = RLock()
        self._entries: Dict[str, ProcessedAsset] = self._load()

    def _load(self) -> Dict[str, ProcessedAsset]:
        if not self.index_file.exists():
            return {}
        try:
            with open(self.index_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            logger.error("Asset index unreadable, starting empty", extra={"error": str(exc)})
            return {}
        entries: Dict[str, ProcessedAsset] = {}
        for item in raw.get("assets", []):
            try:
                asset = ProcessedAsset.from_dict(item)
            except (KeyError, ValueError):
                continue
            entries[asset.cache_key] = asset
        return entries

    def _flush(self) -> None:
        tmp_file = self.index_file.with_suffix(".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump({"assets": [asset.to_dict() for asset in self._entries.values()]}, f, indent=2)
        tmp_file.replace(self.index_file)

    def get(self, cache_key: str) -> Optional[ProcessedAsset]:
        with self._lock:
            asset = self._entries.get(cache_key)
            return ProcessedAsset.from_dict(asset.to_dict()) if asset else None

    def upsert(self, asset: ProcessedAsset) -> ProcessedAsset:
        with self._lock:
            self._entries[asset.cache_key] = ProcessedAsset.from_dict(asset.to_dict())
            self._flush()
            return asset

    def delete(self, cache_key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(cache_key, None) is not None
            if removed:
                self._flush()
            return removed

    def list_all(self) -> List[ProcessedAsset]:
        with self._lock:
            return [ProcessedAsset.from_dict(asset.to_dict()) for asset in self._entries.values()]
