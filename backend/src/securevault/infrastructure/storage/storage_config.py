"""Blob storage configuration and adapter selection."""

from dataclasses import dataclass
from typing import Optional

from ...config import Settings
from ...domain.documents.ports.blob_storage_port import BlobStoragePort
from .local_storage_adapter import LocalBlobStorageAdapter
from .s3_storage_adapter import S3BlobStorageAdapter


@dataclass
class StorageConfig:
    """Which blob backend to use and how to reach it.

    Attributes:
        backend: "local" or "s3"
        upload_dir: Directory for the local backend
        endpoint_url: S3 endpoint URL (None for AWS S3)
    """
    backend: str
    upload_dir: str
    endpoint_url: Optional[str] = None
    access_key: str = ""
    secret_key: str = ""
    bucket_name: str = ""
    region: str = "us-east-1"


def load_storage_config(settings: Settings) -> StorageConfig:
    return StorageConfig(
        backend=settings.STORAGE_BACKEND.lower(),
        upload_dir=settings.UPLOAD_DIR,
        endpoint_url=settings.S3_ENDPOINT_URL,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Raises ValueError if the configuration is unusable."""
    if config.backend == "local":
        if not config.upload_dir:
            raise ValueError("UPLOAD_DIR is required for the local storage backend")
        return

    if config.backend != "s3":
        raise ValueError(f"Unknown STORAGE_BACKEND: {config.backend!r} (expected 'local' or 's3')")

    if not config.access_key or not config.secret_key:
        raise ValueError("S3 credentials are required for the s3 storage backend")
    if not config.bucket_name:
        raise ValueError("S3_BUCKET_NAME is required for the s3 storage backend")
    if config.endpoint_url and not config.endpoint_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid endpoint_url: {config.endpoint_url}. Must start with http:// or https://"
        )


def build_blob_storage(config: StorageConfig) -> BlobStoragePort:
    validate_storage_config(config)
    if config.backend == "s3":
        return S3BlobStorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )
    return LocalBlobStorageAdapter(upload_dir=config.upload_dir)
