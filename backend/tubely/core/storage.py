"""
Tubely S3-Compatible Storage Client

Thin boto3 wrapper used by the upload pipeline. It supports both MinIO (for
development, via ``s3_endpoint_url``) and AWS S3 (when no endpoint is set)
through boto3's generic S3 interface.

Only two operations are needed:
- ``put_file``: write a local file as a single object (overwrite semantics)
- ``presign_get``: generate a time-limited GET URL for an object

Both methods are synchronous, mirroring boto3; async callers run them in a
worker thread. Errors from boto3/botocore are logged and re-raised
unchanged so that callers map them onto their own error taxonomy.
"""

import logging

from pathlib import Path

import boto3

from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings, get_settings


MIN_PRESIGNED_EXPIRATION_SECONDS = 1
MAX_PRESIGNED_EXPIRATION_SECONDS = 7 * 24 * 3600

logger = logging.getLogger(__name__)

# Singleton container for storage client instance
_singleton_container: dict[str, "StorageClient"] = {}


class StorageClient:
    """
    S3-compatible storage client for MinIO and AWS S3.

    The underlying client never retries: every failure surfaces to the
    caller on the first attempt.

    Attributes:
        settings: Application settings containing S3 configuration
        s3_client: Initialized boto3 S3 client
        bucket_name: Default bucket for uploads

    Example usage:
        ```python
        from tubely.core.storage import get_storage_client

        storage = get_storage_client()
        storage.put_file(storage.bucket_name, "landscape/abc.mp4", "/tmp/x.mp4", "video/mp4")
        url = storage.presign_get(storage.bucket_name, "landscape/abc.mp4", 600)
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """
        Create the boto3 S3 client from settings.

        Args:
            settings: Optional Settings instance; defaults to get_settings().
        """
        self.settings = settings or get_settings()

        client_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 1, "mode": "standard"},
        )

        self.s3_client = boto3.client(
            "s3",
            endpoint_url=self.settings.s3_endpoint_url,
            aws_access_key_id=self.settings.s3_access_key_id,
            aws_secret_access_key=self.settings.s3_secret_access_key,
            region_name=self.settings.s3_region,
            config=client_config,
        )
        self.bucket_name = self.settings.s3_bucket_name

        logger.info(
            "S3 storage client initialized",
            extra={
                "bucket": self.bucket_name,
                "region": self.settings.s3_region,
                "endpoint": self.settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    def put_file(
        self,
        bucket: str,
        key: str,
        file_path: str | Path,
        content_type: str,
    ) -> None:
        """
        Upload a local file as one object, replacing any existing object.

        Args:
            bucket: Target bucket.
            key: Object key, e.g. ``"landscape/<video_id>.mp4"``.
            file_path: Local file to read.
            content_type: Content-Type stored with the object.

        Raises:
            ClientError: If S3 rejects the request.
            BotoCoreError: On transport or credential problems.
            OSError: If the local file cannot be read.
        """
        try:
            with open(file_path, "rb") as body:
                self.s3_client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=body,
                    ContentType=content_type,
                )
        except (ClientError, BotoCoreError, OSError):
            logger.exception(
                "Failed to upload file to S3",
                extra={"bucket": bucket, "key": key, "file_path": str(file_path)},
            )
            raise

        logger.info("Uploaded file to S3", extra={"bucket": bucket, "key": key})

    def presign_get(self, bucket: str, key: str, expires_in: int) -> str:
        """
        Generate a presigned GET URL for an object.

        Signing is a local computation; the object is not contacted and does
        not need to exist.

        Args:
            bucket: Bucket holding the object.
            key: Object key.
            expires_in: URL lifetime in seconds.

        Returns:
            str: The presigned URL.

        Raises:
            ValueError: If expires_in is out of range.
            ClientError: If URL generation fails.
            BotoCoreError: If credentials or parameters are unusable.
        """
        if not MIN_PRESIGNED_EXPIRATION_SECONDS <= expires_in <= MAX_PRESIGNED_EXPIRATION_SECONDS:
            raise ValueError(
                f"expires_in must be between {MIN_PRESIGNED_EXPIRATION_SECONDS} and "
                f"{MAX_PRESIGNED_EXPIRATION_SECONDS} seconds, got {expires_in}"
            )

        try:
            url = self.s3_client.generate_presigned_url(
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
        return url


def get_storage_client() -> StorageClient:
    """
    Get the singleton StorageClient instance, creating it on first use.

    Returns:
        StorageClient: The shared storage client instance.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageClient()
        logger.info("Created new StorageClient singleton instance")

    return _singleton_container["instance"]
