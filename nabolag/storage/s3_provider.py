# nabolag/storage/s3_provider.py
"""
S3 storage provider implementation using boto3.

Supports:
- AWS S3
- S3-compatible services (MinIO, DigitalOcean Spaces, Supabase Storage S3 API, etc.)

Namespaces map one-to-one onto buckets.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from nabolag.errors import StorageUnavailable
from nabolag.storage.base import (
    ContentType,
    ObjectRef,
    StorageMetadata,
    StorageProvider,
)

logger = logging.getLogger(__name__)

# S3 DeleteObjects accepts at most 1000 keys per request
S3_DELETE_BATCH_LIMIT = 1000


class S3StorageProvider(StorageProvider):
    """
    S3/S3-compatible storage provider.

    Configuration via environment:
    - S3_ENDPOINT_URL: Custom endpoint for S3-compatible services
    - S3_REGION: AWS region (default: eu-north-1)
    - S3_PUBLIC_BASE_URL: Public URL prefix for objects (CDN or public bucket)
    - AWS_ACCESS_KEY_ID: AWS credentials
    - AWS_SECRET_ACCESS_KEY: AWS credentials
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
        public_base_url: Optional[str] = None,
        client=None,
    ):
        """
        Initialize S3 provider.

        Args:
            endpoint_url: Custom endpoint for S3-compatible services
            region: AWS region
            public_base_url: Prefix for public object URLs
            client: Pre-built boto3 client (testing)
        """
        self._endpoint_url = endpoint_url or os.getenv("S3_ENDPOINT_URL")
        self._region = region or os.getenv("S3_REGION", "eu-north-1")
        self._public_base_url = public_base_url or os.getenv("S3_PUBLIC_BASE_URL")

        if client is None:
            # Configure boto3 client
            config = Config(
                retries={"max_attempts": 3, "mode": "adaptive"},
                connect_timeout=5,
                read_timeout=30,
            )
            client = boto3.client(
                "s3",
                endpoint_url=self._endpoint_url,
                region_name=self._region,
                config=config,
            )
        self._client = client

        logger.info(f"S3 storage initialized: endpoint={self._endpoint_url or 'aws'} region={self._region}")

    @property
    def name(self) -> str:
        return "s3"

    def upload(
        self,
        namespace: str,
        path: str,
        content: bytes,
        content_type: ContentType = ContentType.IMAGE_JPEG,
    ) -> StorageMetadata:
        """Upload an object to S3."""
        try:
            self._client.put_object(
                Bucket=namespace,
                Key=path,
                Body=content,
                ContentType=content_type.value,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for {namespace}/{path}: {e}")
            raise StorageUnavailable(f"S3 upload failed for {namespace}/{path}: {e}", namespace) from e

        logger.debug(f"Uploaded to S3: {namespace}/{path} ({len(content)} bytes)")
        return StorageMetadata(
            ref=ObjectRef(namespace=namespace, path=path),
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=datetime.now(UTC),
        )

    def remove(self, namespace: str, paths: list[str]) -> list[str]:
        """
        Batch delete objects from one bucket.

        S3 reports absent keys as deleted. Keys listed under Errors are not
        returned, so the caller treats them as unconfirmed.
        """
        removed: list[str] = []

        for i in range(0, len(paths), S3_DELETE_BATCH_LIMIT):
            batch = paths[i:i + S3_DELETE_BATCH_LIMIT]
            try:
                response = self._client.delete_objects(
                    Bucket=namespace,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": False},
                )
            except (ClientError, BotoCoreError) as e:
                logger.error(f"S3 batch delete failed for {namespace} ({len(batch)} keys): {e}")
                raise StorageUnavailable(f"S3 batch delete failed for {namespace}: {e}", namespace) from e

            for err in response.get("Errors", []):
                logger.warning(
                    f"S3 could not delete {namespace}/{err.get('Key')}: "
                    f"{err.get('Code')} {err.get('Message')}"
                )
            removed.extend(obj["Key"] for obj in response.get("Deleted", []))

        return removed

    def exists(self, namespace: str, path: str) -> bool:
        """Check if object exists in S3."""
        try:
            self._client.head_object(Bucket=namespace, Key=path)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("404", "NoSuchKey"):
                return False
            raise StorageUnavailable(f"S3 head failed for {namespace}/{path}: {e}", namespace) from e

    def public_url(self, ref: ObjectRef) -> str:
        if self._public_base_url:
            return f"{self._public_base_url.rstrip('/')}/{ref.namespace}/{ref.path}"
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{ref.namespace}/{ref.path}"
        return f"https://{ref.namespace}.s3.{self._region}.amazonaws.com/{ref.path}"
