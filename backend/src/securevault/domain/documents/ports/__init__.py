"""Ports (interfaces) implemented by infrastructure adapters."""

from .blob_storage_port import BlobStoragePort, StorageError

__all__ = ["BlobStoragePort", "StorageError"]
