"""Unit tests for the local filesystem blob store"""

import pytest

from securevault.domain.documents.ports.blob_storage_port import StorageError
from securevault.infrastructure.storage.local_storage_adapter import LocalBlobStorageAdapter


@pytest.fixture
def adapter(tmp_path):
    return LocalBlobStorageAdapter(str(tmp_path / "blobs"))


class TestLocalBlobStorage:

    @pytest.mark.asyncio
    async def test_ensure_ready_creates_directory(self, adapter):
        await adapter.ensure_ready()
        assert adapter.root.is_dir()

    @pytest.mark.asyncio
    async def test_ensure_ready_fails_when_path_is_a_file(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_bytes(b"x")

        with pytest.raises(StorageError):
            await LocalBlobStorageAdapter(str(blocker)).ensure_ready()

    @pytest.mark.asyncio
    async def test_write_and_read(self, adapter):
        await adapter.ensure_ready()

        locator = await adapter.write_new(b"%PDF-1.4 body", extension=".pdf")

        assert locator.endswith(".pdf")
        assert await adapter.read(locator) == b"%PDF-1.4 body"
        assert (adapter.root / locator).read_bytes() == b"%PDF-1.4 body"

    @pytest.mark.asyncio
    async def test_every_write_gets_a_new_locator(self, adapter):
        await adapter.ensure_ready()

        first = await adapter.write_new(b"same bytes")
        second = await adapter.write_new(b"same bytes")

        assert first != second

    @pytest.mark.asyncio
    async def test_write_without_directory_raises_storage_error(self, adapter):
        with pytest.raises(StorageError):
            await adapter.write_new(b"data", extension=".pdf")

    @pytest.mark.asyncio
    async def test_read_missing_blob(self, adapter):
        await adapter.ensure_ready()

        with pytest.raises(FileNotFoundError):
            await adapter.read("missing.pdf")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, adapter):
        await adapter.ensure_ready()
        locator = await adapter.write_new(b"data")

        assert await adapter.delete(locator) is True
        assert await adapter.exists(locator) is False
        assert await adapter.delete(locator) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("locator", ["../escape.pdf", "nested/blob.pdf", "", ".."])
    async def test_non_flat_locators_rejected(self, adapter, locator):
        await adapter.ensure_ready()

        with pytest.raises(StorageError, match="Invalid blob locator"):
            await adapter.read(locator)
