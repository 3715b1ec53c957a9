"""
Listing directory - read-only lookup of listing facts the pipeline needs.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from reelgen.core import get_logger
from reelgen.models import Coordinates

logger = get_logger(__name__, component="listing_directory")


class ListingDirectory(ABC):

    @abstractmethod
    def get_coordinates(self, listing_id: str) -> Optional[Coordinates]:
        """Geographic position of the listing, or None when unknown."""
        pass


class FileListingDirectory(ListingDirectory):
    """Listings kept in a single JSON object keyed by listing id.

    Example file::

        {"listing-1": {"coordinates": {"lat": 40.7128, "lng": -74.006}}}
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read listings file", extra={"path": str(self.path), "error": str(exc)})
            return {}
        return data if isinstance(data, dict) else {}

    def get_coordinates(self, listing_id: str) -> Optional[Coordinates]:
        listing = self._load().get(listing_id) or {}
        return Coordinates.from_dict(listing.get("coordinates"))

    def set_coordinates(self, listing_id: str, coordinates: Coordinates) -> None:
        data = self._load()
        data.setdefault(listing_id, {})["coordinates"] = coordinates.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
