"""
Tests for reelgen.services.infrastructure.storage.object_store
"""

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from reelgen.core import StorageError
from reelgen.services.infrastructure.storage.object_store import (
    LocalObjectStore,
    S3ObjectStore,
    _normalize_key,
    create_object_store,
)


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestNormalizeKey:

    def test_strips_leading_slashes_and_dots(self):
        assert _normalize_key("/a/./b//c.mp4") == "a/b/c.mp4"

    def test_backslashes_are_converted(self):
        assert _normalize_key("a\\b.mp4") == "a/b.mp4"

    @pytest.mark.parametrize("key", ["", "/", "a/../b"])
    def test_rejects_invalid_keys(self, key):
        with pytest.raises(StorageError):
            _normalize_key(key)


@pytest.mark.asyncio
class TestLocalObjectStore:

    async def test_put_then_get(self, tmp_path):
        store = LocalObjectStore(tmp_path)

        location = await store.put(b"data", "/clips/a.mp4", "video/mp4")

        assert location == "clips/a.mp4"
        assert await store.get(location) == b"data"
        assert await store.exists(location)
        assert not (tmp_path / "clips" / "a.mp4.part").exists()

    async def test_missing_object(self, tmp_path):
        store = LocalObjectStore(tmp_path)

        assert not await store.exists("nope.mp4")
        with pytest.raises(StorageError, match="not found"):
            await store.get("nope.mp4")
        with pytest.raises(StorageError):
            await store.download_to("nope.mp4", tmp_path / "out.mp4")

    async def test_put_file_and_download(self, tmp_path):
        store = LocalObjectStore(tmp_path / "store")
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"clip")

        key = await store.put_file(source, "a/b/clip.mp4")
        target = await store.download_to(key, tmp_path / "work" / "copy.mp4")

        assert target.read_bytes() == b"clip"

    async def test_traversal_is_rejected(self, tmp_path):
        store = LocalObjectStore(tmp_path)

        with pytest.raises(StorageError):
            await store.put(b"x", "../escape.txt")


@pytest.mark.asyncio
class TestS3ObjectStore:

    async def test_requires_bucket(self):
        with pytest.raises(StorageError):
            S3ObjectStore("", client=MagicMock())

    async def test_put_uses_normalized_key(self):
        client = MagicMock()
        store = S3ObjectStore("reels", client=client)

        location = await store.put(b"v", "/a/b.mp4", "video/mp4")

        assert location == "a/b.mp4"
        client.put_object.assert_called_once_with(
            Bucket="reels", Key="a/b.mp4", Body=b"v", ContentType="video/mp4",
        )

    async def test_get_reads_body(self):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO(b"payload")}

        assert await S3ObjectStore("reels", client=client).get("a.mp4") == b"payload"

    async def test_client_errors_become_storage_errors(self):
        client = MagicMock()
        client.get_object.side_effect = _client_error("AccessDenied", "GetObject")
        client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3")
        store = S3ObjectStore("reels", client=client)

        with pytest.raises(StorageError):
            await store.get("a.mp4")
        with pytest.raises(StorageError):
            await store.put(b"v", "a.mp4")

    @pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
    async def test_exists_false_for_missing(self, code):
        client = MagicMock()
        client.head_object.side_effect = _client_error(code)

        assert await S3ObjectStore("reels", client=client).exists("a.mp4") is False

    async def test_exists_raises_on_other_errors(self):
        client = MagicMock()
        client.head_object.side_effect = _client_error("403")

        with pytest.raises(StorageError):
            await S3ObjectStore("reels", client=client).exists("a.mp4")

    async def test_exists_true(self):
        client = MagicMock()

        assert await S3ObjectStore("reels", client=client).exists("a.mp4") is True


class TestCreateObjectStore:

    def test_local_backend(self, settings):
        store = create_object_store(settings)

        assert isinstance(store, LocalObjectStore)
        assert store.root == settings.storage_dir
