# nabolag/storage/__init__.py
"""
Storage provider abstraction for post images.

Image bytes are stored in object storage (S3), not Postgres.
This module provides a clean interface for upload/remove operations.
"""

from nabolag.storage.base import (
    ContentType,
    ObjectRef,
    StorageMetadata,
    StorageProvider,
)
from nabolag.storage.factory import (
    get_storage_provider,
    reset_storage_provider,
    set_storage_provider,
)
from nabolag.storage.local_provider import LocalStorageProvider
from nabolag.storage.s3_provider import S3StorageProvider

__all__ = [
    "StorageProvider",
    "StorageMetadata",
    "ObjectRef",
    "ContentType",
    "S3StorageProvider",
    "LocalStorageProvider",
    "get_storage_provider",
    "set_storage_provider",
    "reset_storage_provider",
]
