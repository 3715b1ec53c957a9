"""Storage layer - data persistence."""

from .job_repository import JobStore, UPDATABLE_FIELDS
from .object_store import ObjectStore, LocalObjectStore, S3ObjectStore, create_object_store
from .asset_repository import AssetRepository, FileAssetRepository
from .listing_repository import ListingDirectory, FileListingDirectory

__all__ = [
    "JobStore",
    "UPDATABLE_FIELDS",
    "ObjectStore",
    "LocalObjectStore",
    "S3ObjectStore",
    "create_object_store",
    "AssetRepository",
    "FileAssetRepository",
    "ListingDirectory",
    "FileListingDirectory",
]
