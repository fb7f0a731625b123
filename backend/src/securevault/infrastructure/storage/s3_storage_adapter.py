"""S3 Storage Adapter - implementation of BlobStoragePort using boto3.

Works against AWS S3 and S3-compatible services (MinIO).
"""

import logging
from typing import Optional
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from ...domain.documents.ports.blob_storage_port import BlobStoragePort, StorageError

logger = logging.getLogger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class S3BlobStorageAdapter(BlobStoragePort):
    """S3-compatible blob storage.

    Objects are keyed by the generated locator (UUID4 plus extension).

    Example:
        storage = S3BlobStorageAdapter(
            endpoint_url="http://localhost:9000",
            access_key="minioadmin",
            secret_key="minioadmin",
            bucket_name="securevault-documents",
        )
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
    ):
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
            self.bucket_name = bucket_name
            self.region = region

            logger.info(
                f"Initialized S3 blob storage: bucket={bucket_name}, "
                f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    async def ensure_ready(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return
        except ClientError as e:
            error_code = _error_code(e)
            if error_code not in ("404", "NoSuchBucket"):
                raise StorageError(f"Cannot access bucket {self.bucket_name}: {error_code}")

        try:
            if self.region == "us-east-1":
                self.s3_client.create_bucket(Bucket=self.bucket_name)
            else:
                self.s3_client.create_bucket(
                    Bucket=self.bucket_name,
                    CreateBucketConfiguration={"LocationConstraint": self.region},
                )
            logger.info(f"Created bucket: {self.bucket_name}")
        except ClientError as e:
            error_code = _error_code(e)
            raise StorageError(f"Failed to create bucket {self.bucket_name}: {error_code}")

    async def write_new(self, data: bytes, extension: str = "") -> str:
        locator = f"{uuid4()}{extension}"
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=locator,
                Body=data,
            )
        except ClientError as e:
            error_code = _error_code(e)
            logger.error(f"S3 upload failed: locator={locator}, error={error_code}")
            raise StorageError(f"Failed to upload blob: {error_code}")

        logger.info(f"Uploaded blob: locator={locator}, size={len(data)}")
        return locator

    async def read(self, locator: str) -> bytes:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=locator)
            return response["Body"].read()
        except ClientError as e:
            error_code = _error_code(e)
            if error_code == "NoSuchKey":
                raise FileNotFoundError(f"Blob not found: {locator}")
            logger.error(f"S3 retrieval failed: locator={locator}, error={error_code}")
            raise StorageError(f"Failed to retrieve blob: {error_code}")

    async def delete(self, locator: str) -> bool:
        if not await self.exists(locator):
            logger.info(f"Blob not found for deletion: locator={locator}")
            return False

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=locator)
        except ClientError as e:
            error_code = _error_code(e)
            logger.error(f"S3 deletion failed: locator={locator}, error={error_code}")
            raise StorageError(f"Failed to delete blob: {error_code}")

        logger.info(f"Deleted blob: locator={locator}")
        return True

    async def exists(self, locator: str) -> bool:
        """HEAD the object; a 404 means absent, other errors propagate."""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=locator)
            return True
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check blob: {error_code}")
