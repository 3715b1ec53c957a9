"""Artifact cache - reuse of synthesized clips and composed reels."""

from .keys import derive_cache_key, content_hash, COORDINATE_PRECISION
from .asset_cache import AssetCache

__all__ = [
    "derive_cache_key",
    "content_hash",
    "COORDINATE_PRECISION",
    "AssetCache",
]
