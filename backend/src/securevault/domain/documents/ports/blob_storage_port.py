"""Blob Storage Port - domain interface for document byte storage.

Adapters (local filesystem, S3-compatible) implement this contract. Bytes
are stored unmodified under a generated, collision-resistant name, and the
name (the "locator") is what the Document row keeps.
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when a storage operation fails."""
    pass


class BlobStoragePort(ABC):
    """Port interface for document blob storage.

    Key Design Principles:
    - Locators are generated by the adapter from a UUID plus an extension,
      never from user input, so concurrent writes cannot collide
    - write_new never overwrites an existing blob
    - delete is idempotent

    Example Usage:
        storage = LocalBlobStorageAdapter(upload_dir="./uploads")
        await storage.ensure_ready()
        locator = await storage.write_new(data, extension=".pdf")
        await storage.delete(locator)
    """

    @abstractmethod
    async def ensure_ready(self) -> None:
        """Make sure the storage area exists and is reachable.

        Called at application startup and by the health check.

        Raises:
            StorageError: If storage cannot be prepared or reached
        """
        pass

    @abstractmethod
    async def write_new(self, data: bytes, extension: str = "") -> str:
        """Store bytes under a freshly generated unique name.

        Args:
            data: File content, stored unmodified
            extension: Sanitized extension including the dot (e.g. ".pdf"), or ""

        Returns:
            str: Locator of the new blob

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def read(self, locator: str) -> bytes:
        """Return the stored bytes.

        Raises:
            FileNotFoundError: If no blob exists under the locator
            StorageError: If retrieval fails
        """
        pass

    @abstractmethod
    async def delete(self, locator: str) -> bool:
        """Remove a blob.

        Returns:
            bool: True if the blob was deleted, False if it didn't exist

        Raises:
            StorageError: If deletion fails
        """
        pass

    @abstractmethod
    async def exists(self, locator: str) -> bool:
        pass
