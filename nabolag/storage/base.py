# nabolag/storage/base.py
"""
Storage provider interface for post images.

Design principles:
- Image bytes live in object storage, not Postgres
- Postgres stores only namespace + path references
- Objects are addressed by (namespace, path); on S3 the namespace is the bucket
- Removal is batched and idempotent: removing an absent object is not an error
- Provider failures surface as StorageUnavailable so callers can decide
  whether to block (prune job) or swallow (direct delete)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import uuid


class ContentType(str, Enum):
    """Supported content types for post images."""
    IMAGE_JPEG = "image/jpeg"
    IMAGE_PNG = "image/png"
    IMAGE_WEBP = "image/webp"


EXTENSIONS = {
    ContentType.IMAGE_JPEG: "jpg",
    ContentType.IMAGE_PNG: "png",
    ContentType.IMAGE_WEBP: "webp",
}


@dataclass(frozen=True)
class ObjectRef:
    """Reference to one stored object."""
    namespace: str
    path: str


@dataclass
class StorageMetadata:
    """Metadata about an uploaded object."""
    ref: ObjectRef
    content_type: ContentType
    size_bytes: int
    uploaded_at: datetime


class StorageProvider(ABC):
    """
    Abstract interface for object storage.

    Implementations must handle:
    - Upload of raw bytes
    - Batch removal returning the paths confirmed gone
    - Public URL resolution for client reads
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 's3', 'local')."""
        pass

    @abstractmethod
    def upload(
        self,
        namespace: str,
        path: str,
        content: bytes,
        content_type: ContentType = ContentType.IMAGE_JPEG,
    ) -> StorageMetadata:
        """
        Upload content to storage.

        Raises:
            StorageUnavailable: if the object could not be written
        """
        pass

    @abstractmethod
    def remove(self, namespace: str, paths: list[str]) -> list[str]:
        """
        Remove a batch of objects from one namespace.

        Absent objects count as removed.

        Returns:
            The paths confirmed removed (or confirmed absent)

        Raises:
            StorageUnavailable: if the batch call itself failed
        """
        pass

    @abstractmethod
    def exists(self, namespace: str, path: str) -> bool:
        """Check if object exists."""
        pass

    @abstractmethod
    def public_url(self, ref: ObjectRef) -> str:
        """URL clients use to fetch the object."""
        pass

    def generate_path(
        self,
        owner_id: str,
        content_type: ContentType = ContentType.IMAGE_JPEG,
    ) -> str:
        """
        Generate a storage path for a new post image.

        Format: {owner_id}/{uuid}.{ext}
        """
        return f"{owner_id}/{uuid.uuid4().hex}.{EXTENSIONS[content_type]}"
