"""Local filesystem implementation of BlobStoragePort.

Blobs live flat in one directory as ``<uuid4><ext>``. New files are opened
with mode "xb" so an existing blob is never overwritten.
"""

import logging
from pathlib import Path
from uuid import uuid4

from ...domain.documents.ports.blob_storage_port import BlobStoragePort, StorageError

logger = logging.getLogger(__name__)


class LocalBlobStorageAdapter(BlobStoragePort):
    """Stores document bytes in a directory on the local filesystem.

    Example:
        storage = LocalBlobStorageAdapter(upload_dir="./uploads")
        await storage.ensure_ready()
        locator = await storage.write_new(b"%PDF-1.7 ...", extension=".pdf")
    """

    def __init__(self, upload_dir: str):
        self.root = Path(upload_dir).resolve()

    def _path_for(self, locator: str) -> Path:
        # Locators are flat names; anything else would escape the upload directory
        if not locator or Path(locator).name != locator or locator in (".", ".."):
            raise StorageError(f"Invalid blob locator: {locator!r}")
        return self.root / locator

    async def ensure_ready(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create upload directory {self.root}: {e}")
        if not self.root.is_dir():
            raise StorageError(f"Upload path is not a directory: {self.root}")

    async def write_new(self, data: bytes, extension: str = "") -> str:
        locator = f"{uuid4()}{extension}"
        path = self._path_for(locator)

        try:
            with open(path, "xb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Blob write failed: locator={locator}, error={e}")
            raise StorageError(f"Failed to write blob: {e}")

        logger.info(f"Stored blob: locator={locator}, size={len(data)}")
        return locator

    async def read(self, locator: str) -> bytes:
        path = self._path_for(locator)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise FileNotFoundError(f"Blob not found: {locator}")
        except OSError as e:
            raise StorageError(f"Failed to read blob: {e}")

    async def delete(self, locator: str) -> bool:
        path = self._path_for(locator)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info(f"Blob not found for deletion: locator={locator}")
            return False
        except OSError as e:
            logger.error(f"Blob deletion failed: locator={locator}, error={e}")
            raise StorageError(f"Failed to delete blob: {e}")

        logger.info(f"Deleted blob: locator={locator}")
        return True

    async def exists(self, locator: str) -> bool:
        return self._path_for(locator).is_file()
