"""
Tests for reelgen.services.infrastructure.storage.listing_repository
"""

import json

from reelgen.models import Coordinates
from reelgen.services.infrastructure.storage import FileListingDirectory


class TestFileListingDirectory:

    def test_missing_file_has_no_coordinates(self, tmp_path):
        assert FileListingDirectory(tmp_path / "listings.json").get_coordinates("l1") is None

    def test_reads_coordinates(self, tmp_path):
        path = tmp_path / "listings.json"
        path.write_text(json.dumps({"l1": {"coordinates": {"lat": 40.7, "lng": -74.0}}}))

        assert FileListingDirectory(path).get_coordinates("l1") == Coordinates(40.7, -74.0)

    def test_incomplete_coordinates(self, tmp_path):
        path = tmp_path / "listings.json"
        path.write_text(json.dumps({"l1": {"coordinates": {"lat": 40.7}}}))

        assert FileListingDirectory(path).get_coordinates("l1") is None

    def test_set_coordinates_keeps_other_listings(self, tmp_path):
        path = tmp_path / "data" / "listings.json"
        directory = FileListingDirectory(path)

        directory.set_coordinates("l1", Coordinates(1.0, 2.0))
        directory.set_coordinates("l2", Coordinates(3.0, 4.0))

        assert directory.get_coordinates("l1") == Coordinates(1.0, 2.0)
        assert directory.get_coordinates("l2") == Coordinates(3.0, 4.0)

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "listings.json"
        path.write_text("{")

        assert FileListingDirectory(path).get_coordinates("l1") is None
