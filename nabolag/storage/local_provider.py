# nabolag/storage/local_provider.py
"""
Local filesystem storage provider for development and testing.

Mimics S3 behavior but stores files locally, one directory per namespace.
NOT for production use.
"""

import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from nabolag.errors import StorageUnavailable
from nabolag.storage.base import (
    ContentType,
    ObjectRef,
    StorageMetadata,
    StorageProvider,
)

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """
    Local filesystem storage provider.

    Stores files under {base_path}/{namespace}/{path}.
    Useful for development and testing without S3 access.

    Configuration:
    - LOCAL_STORAGE_PATH: Base directory (default: ./storage)
    - public_base_url: Prefix for public_url (default: file URI of base_path)
    """

    def __init__(self, base_path: str | None = None, public_base_url: str | None = None):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for storage (or LOCAL_STORAGE_PATH env)
            public_base_url: URL prefix returned by public_url
        """
        self._base_path = Path(base_path or os.getenv("LOCAL_STORAGE_PATH", "./storage"))
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._public_base_url = (public_base_url or self._base_path.resolve().as_uri()).rstrip("/")

        logger.info(f"Local storage initialized: {self._base_path}")

    @property
    def name(self) -> str:
        return "local"

    def _get_path(self, namespace: str, path: str) -> Path:
        """Get filesystem path for an object, with path traversal protection."""
        root = self._base_path.resolve()
        ns_root = (root / namespace).resolve()
        if not ns_root.is_relative_to(root) or ns_root == root:
            raise ValueError("Path traversal detected")
        resolved = (ns_root / path).resolve()
        if not resolved.is_relative_to(ns_root) or resolved == ns_root:
            raise ValueError("Path traversal detected")
        return resolved

    def upload(
        self,
        namespace: str,
        path: str,
        content: bytes,
        content_type: ContentType = ContentType.IMAGE_JPEG,
    ) -> StorageMetadata:
        """Write content to the local filesystem."""
        file_path = self._get_path(namespace, path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(content)
        except OSError as e:
            raise StorageUnavailable(f"Local upload failed for {namespace}/{path}: {e}", namespace) from e

        logger.debug(f"Uploaded to local: {namespace}/{path}")
        return StorageMetadata(
            ref=ObjectRef(namespace=namespace, path=path),
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=datetime.now(UTC),
        )

    def remove(self, namespace: str, paths: list[str]) -> list[str]:
        """
        Delete files; missing files count as removed.

        Paths escaping the namespace directory are never touched and are not
        returned as removed.
        """
        removed = []
        for path in paths:
            try:
                file_path = self._get_path(namespace, path)
            except ValueError as e:
                # Left out of the result, callers treat it as unconfirmed
                logger.error(f"Refusing to remove {namespace}/{path}: {e}")
                continue
            try:
                file_path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageUnavailable(f"Local remove failed for {namespace}/{path}: {e}", namespace) from e
            removed.append(path)
        return removed

    def exists(self, namespace: str, path: str) -> bool:
        """Check if object exists."""
        return self._get_path(namespace, path).exists()

    def public_url(self, ref: ObjectRef) -> str:
        return f"{self._public_base_url}/{ref.namespace}/{ref.path}"

    def list_all(self, namespace: str) -> list[str]:
        """List all object paths in a namespace."""
        ns_path = self._base_path / namespace
        if not ns_path.exists():
            return []
        return sorted(
            str(p.relative_to(ns_path)).replace(os.sep, "/")
            for p in ns_path.rglob("*")
            if p.is_file()
        )
