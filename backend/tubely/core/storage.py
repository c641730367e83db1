"""
Tubely S3-Compatible Storage Client

A thin boto3 wrapper that works with both MinIO (development) and AWS S3
(production) through a configurable endpoint URL. It exposes the operations the
ingestion pipeline needs:

- put_object: write a seekable body under a key with a content type
- generate_presigned_download_url: time-limited GET URL for a private object
- bucket_exists: HEAD the bucket for readiness checks

Network behaviour is bounded: connect/read timeouts come from Settings and
botocore retries are disabled, so every failure surfaces to the caller
immediately. All methods are blocking; async callers run them through
asyncio.to_thread.
"""

import logging

from typing import Any, BinaryIO

import boto3

from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings


MIN_PRESIGNED_EXPIRATION_SECONDS = 60
MAX_PRESIGNED_EXPIRATION_SECONDS = 86400

# Configure module-level logger
logger = logging.getLogger(__name__)


class StorageClient:
    """
    S3-compatible storage client supporting both MinIO and AWS S3.

    Attributes:
        s3_client: Initialized boto3 S3 client
        bucket_name: Default bucket taken from settings

    Example usage:
        ```python
        storage = StorageClient(settings)
        with open("/tmp/upload.mp4", "rb") as body:
            storage.put_object("tubely-media", "landscape/abc.mp4", body, "video/mp4")
        url = storage.generate_presigned_download_url("tubely-media", "landscape/abc.mp4", 300)
        ```
    """

    def __init__(self, settings: Settings) -> None:
        """
        Create the boto3 S3 client.

        When s3_endpoint_url is None boto3 targets AWS S3; otherwise it connects
        to the given endpoint with path-style addressing for MinIO compatibility.
        Missing access keys fall through to boto3's default credential chain.
        """
        client_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path" if settings.s3_endpoint_url else "auto"},
            retries={"total_max_attempts": 1, "mode": "standard"},
            connect_timeout=settings.storage_connect_timeout_seconds,
            read_timeout=settings.storage_read_timeout_seconds,
        )

        self.s3_client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            region_name=settings.s3_region,
            config=client_config,
        )
        self.bucket_name = settings.s3_bucket_name

        logger.info(
            "S3 storage client initialized",
            extra={
                "bucket": self.bucket_name,
                "region": settings.s3_region,
                "endpoint": settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    def put_object(
        self,
        bucket: str,
        key: str,
        body: BinaryIO,
        content_type: str,
    ) -> dict[str, Any]:
        """
        Upload a readable body to the bucket under key.

        Args:
            bucket: Target bucket.
            key: Object key.
            body: Binary file object positioned at the first byte to send.
            content_type: Stored as the object's Content-Type.

        Returns:
            dict: The raw PutObject response (ETag, VersionId, ...).

        Raises:
            ClientError: If the store rejects the request.
            BotoCoreError: On transport failures, including timeouts.
        """
        try:
            response = self.s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError):
            logger.exception(
                "Failed to upload object to S3",
                extra={"bucket": bucket, "key": key, "content_type": content_type},
            )
            raise

        logger.info(
            "Uploaded object to S3",
            extra={"bucket": bucket, "key": key, "content_type": content_type},
        )
        return response

    def generate_presigned_download_url(
        self,
        bucket: str,
        key: str,
        expires_in: int,
    ) -> str:
        """
        Generate a presigned GET URL for a stored object.

        Args:
            bucket: Bucket holding the object.
            key: Object key.
            expires_in: Lifetime in seconds, between 60 and 86400.

        Returns:
            str: URL that grants read access until it expires.

        Raises:
            ValueError: If expires_in is outside the valid range.
            ClientError: If signing fails.
            BotoCoreError: If credentials are missing or signing fails locally.
        """
        if not MIN_PRESIGNED_EXPIRATION_SECONDS <= expires_in <= MAX_PRESIGNED_EXPIRATION_SECONDS:
            raise ValueError(
                f"expires_in must be between {MIN_PRESIGNED_EXPIRATION_SECONDS} and "
                f"{MAX_PRESIGNED_EXPIRATION_SECONDS} seconds, got {expires_in}"
            )

        try:
            presigned_url = self.s3_client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError):
            logger.exception(
                "Failed to generate presigned download URL",
                extra={"bucket": bucket, "key": key},
            )
            raise

        logger.debug(
            "Generated presigned download URL",
            extra={"bucket": bucket, "key": key, "expires_in": expires_in},
        )
        return presigned_url

    def bucket_exists(self, bucket: str | None = None) -> bool:
        """HEAD the bucket. Returns False on any client or transport error."""
        try:
            self.s3_client.head_bucket(Bucket=bucket or self.bucket_name)
            return True
        except (ClientError, BotoCoreError):
            logger.warning("Bucket check failed", extra={"bucket": bucket or self.bucket_name})
            return False
