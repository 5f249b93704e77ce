"""
S3 client for the uploaded-spreadsheet bucket.

This module provides the S3Client class used for every object-storage call
the application makes: upload of a freshly dropped file, download for
viewing or saving, and removal on delete. Each call is a single request;
failures surface to the caller as StorageError.

Object keys are owner-scoped: ``{user_id}/{epoch_ms}-{original_name}``.
Every call is authorized against the storage policies before it is issued.

Module Input:
    - Object keys relative to the configured prefix
    - Raw file bytes and content types
    - AWS credentials from settings

Module Output:
    - Stored objects in the spreadsheet bucket
    - Downloaded object bytes
    - Upload/removal status via logging
"""

import time
from typing import Optional, List

import boto3
from botocore.exceptions import ClientError, BotoCoreError

from EAP.core.exceptions import StorageError, ConfigError
from EAP.core.logging_config import get_logger
from EAP.core.settings import settings
from EAP.services.database import policies

logger = get_logger(__name__)


def build_object_key(user_id: str, original_name: str, now: Optional[float] = None) -> str:
    """
    Build the owner-scoped key for a new upload.

    Example:
        >>> build_object_key("u-1", "sales.xlsx", now=1700000000.5)
        'u-1/1700000000500-sales.xlsx'
    """
    stamp = int((time.time() if now is None else now) * 1000)
    return f"{user_id}/{stamp}-{original_name}"


class S3Client:
    """
    Object-storage client bound to one bucket.

    Attributes:
        bucket (str): Target S3 bucket name
        prefix (str): Key prefix prepended to every owner-scoped key
        _s3_client: Boto3 S3 client instance

    Thread Safety:
        Not thread-safe. Create separate instances for concurrent use.
    """

    def __init__(self, bucket: str, prefix: str = "", client=None):
        """
        Initialize S3 client with bucket configuration.

        Creates a boto3 S3 client using credentials from settings, falling
        back to the default credential chain when none are configured.

        Args:
            bucket (str): Target S3 bucket name
            prefix (str): S3 key prefix (default: "")
            client: Pre-built boto3 S3 client (default: built from settings)

        Raises:
            ConfigError: If bucket is empty or the client cannot be created
        """
        if not bucket:
            raise ConfigError("S3 bucket name cannot be empty")

        self.bucket = bucket
        self.prefix = prefix.strip("/") + "/" if prefix else ""

        if client is not None:
            self._s3_client = client
            return

        try:
            session = boto3.Session(**settings.get_aws_session_kwargs())
            self._s3_client = session.client("s3")

            logger.info(
                f"Initialized S3Client for bucket '{bucket}' with prefix '{self.prefix}'"
            )

        except (BotoCoreError, ValueError) as e:
            raise ConfigError(
                "Failed to initialize S3 client",
                details={"error": str(e), "bucket": bucket}
            )

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key.lstrip('/')}"

    def _error_message(self, error: Exception) -> str:
        if isinstance(error, ClientError):
            return error.response.get("Error", {}).get("Message") or str(error)
        return str(error)

    def upload_bytes(
        self,
        key: str,
        data: bytes,
        auth_uid: str,
        content_type: Optional[str] = None
    ) -> str:
        """
        Store ``data`` under ``key``.

        Args:
            key (str): Owner-scoped key, e.g. "u-1/1700000000000-sales.xlsx"
            data (bytes): File contents
            auth_uid (str): Caller id checked against the storage policy
            content_type (Optional[str]): MIME type recorded on the object

        Returns:
            str: S3 URI of the stored object

        Raises:
            AccessDeniedError: If the key is outside the caller's folder
            StorageError: If the upload fails
        """
        policies.check_object(self.bucket, "INSERT", key, auth_uid)
        full_key = self._full_key(key)

        extra = {"ContentType": content_type or "application/octet-stream"}
        try:
            logger.info(f"Uploading {len(data)} bytes to s3://{self.bucket}/{full_key}")
            self._s3_client.put_object(Bucket=self.bucket, Key=full_key, Body=data, **extra)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Upload failed for {full_key}: {e}")
            raise StorageError(
                self._error_message(e),
                details={"bucket": self.bucket, "key": full_key}
            )

        s3_uri = f"s3://{self.bucket}/{full_key}"
        logger.info(f"Successfully uploaded {s3_uri}")
        return s3_uri

    def download_bytes(self, key: str, auth_uid: str) -> bytes:
        """
        Fetch the object stored under ``key``.

        Raises:
            AccessDeniedError: If the key is outside the caller's folder
            StorageError: If the object cannot be read
        """
        policies.check_object(self.bucket, "SELECT", key, auth_uid)
        full_key = self._full_key(key)

        try:
            response = self._s3_client.get_object(Bucket=self.bucket, Key=full_key)
            body = response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Download failed for {full_key}: {e}")
            raise StorageError(
                self._error_message(e),
                details={"bucket": self.bucket, "key": full_key}
            )

        logger.debug(f"Downloaded {len(body)} bytes from {full_key}")
        return body

    def remove(self, keys: List[str], auth_uid: str) -> int:
        """
        Delete objects in one batch request.

        Returns:
            int: Number of keys removed

        Raises:
            AccessDeniedError: If any key is outside the caller's folder
            StorageError: If the request fails or S3 reports per-key errors
        """
        for key in keys:
            policies.check_object(self.bucket, "DELETE", key, auth_uid)

        if not keys:
            return 0

        objects = [{"Key": self._full_key(key)} for key in keys]
        try:
            response = self._s3_client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": objects, "Quiet": True}
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Removal failed for {len(keys)} object(s): {e}")
            raise StorageError(
                self._error_message(e),
                details={"bucket": self.bucket, "keys": keys}
            )

        errors = response.get("Errors") or []
        if errors:
            raise StorageError(
                errors[0].get("Message", "Failed to delete object"),
                details={"bucket": self.bucket, "errors": errors}
            )

        logger.info(f"Removed {len(keys)} object(s) from s3://{self.bucket}")
        return len(keys)

    def ensure_bucket(self) -> bool:
        """
        Create the bucket when it does not exist yet.

        The bucket is private; access goes through the storage policies.

        Returns:
            bool: True when the bucket was created

        Raises:
            StorageError: If the bucket cannot be checked or created
        """
        try:
            self._s3_client.head_bucket(Bucket=self.bucket)
            logger.info(f"Bucket '{self.bucket}' already exists")
            return False
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code not in ("404", "NoSuchBucket", "NotFound"):
                raise StorageError(self._error_message(e), details={"bucket": self.bucket})

        kwargs = {"Bucket": self.bucket}
        if settings.aws_default_region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": settings.aws_default_region}
        try:
            self._s3_client.create_bucket(**kwargs)
            self._s3_client.put_public_access_block(
                Bucket=self.bucket,
                PublicAccessBlockConfiguration={
                    "BlockPublicAcls": True,
                    "IgnorePublicAcls": True,
                    "BlockPublicPolicy": True,
                    "RestrictPublicBuckets": True,
                }
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(self._error_message(e), details={"bucket": self.bucket})

        logger.info(f"Created private bucket '{self.bucket}'")
        return True
