# nabolag/services/posts_service.py
"""
Post creation and listing.

Creation uploads the prepared images first, then inserts the row with
expires_at = now + TTL. Listing always runs the read filter, so expired posts
never reach clients regardless of when the prune job last ran.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nabolag.config import get_settings
from nabolag.constants import POST_TTL, PostLimits
from nabolag.errors import StorageUnavailable, StoreUnavailable
from nabolag.models import Post
from nabolag.services.lifecycle.expiration import filter_alive, implicit_expiry_cutoff
from nabolag.services.lifecycle.items import normalize_paths, object_refs_from_row
from nabolag.storage.base import ContentType, StorageProvider
from nabolag.storage.factory import get_storage_provider
from nabolag.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class PreparedImage:
    """Decoded image ready for upload."""

    content: bytes
    content_type: ContentType = ContentType.IMAGE_JPEG


_DATA_URI_TYPES = {
    "image/jpeg": ContentType.IMAGE_JPEG,
    "image/jpg": ContentType.IMAGE_JPEG,
    "image/png": ContentType.IMAGE_PNG,
    "image/webp": ContentType.IMAGE_WEBP,
}


def decode_image(payload: str) -> PreparedImage:
    """
    Decode a base64 image, optionally wrapped in a data URI.

    Raises ValueError for malformed, unsupported or oversized payloads.
    """
    content_type = ContentType.IMAGE_JPEG
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        mime = header[5:].split(";")[0].lower()
        if mime not in _DATA_URI_TYPES:
            raise ValueError(f"Unsupported image type: {mime}")
        content_type = _DATA_URI_TYPES[mime]

    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Image is not valid base64: {e}") from e

    if not content:
        raise ValueError("Image is empty")
    if len(content) > PostLimits.MAX_IMAGE_BYTES:
        raise ValueError(f"Image exceeds {PostLimits.MAX_IMAGE_BYTES} bytes")
    return PreparedImage(content=content, content_type=content_type)


def _discard_uploads(storage: StorageProvider, namespace: str, paths: list[str]) -> None:
    """Best-effort cleanup of uploads whose post never got a row."""
    if not paths:
        return
    try:
        storage.remove(namespace, paths)
    except StorageUnavailable as e:
        logger.warning(f"Could not discard {len(paths)} orphaned uploads in {namespace}: {e}")


def create_post(
    db: Session,
    user_id: str,
    title: str,
    body: str = "",
    area: str | None = None,
    category: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    images: list[PreparedImage] | None = None,
    storage: StorageProvider | None = None,
    now: datetime | None = None,
) -> Post:
    """
    Create a post with an explicit expiry of now + TTL.

    Raises:
        ValueError: invalid input
        StorageUnavailable: an image upload failed (nothing persisted)
        StoreUnavailable: the row insert failed (uploads discarded best effort)
    """
    images = images or []
    if len(images) > PostLimits.MAX_IMAGES:
        raise ValueError(f"At most {PostLimits.MAX_IMAGES} images per post")
    title = title.strip()
    if not title:
        raise ValueError("Title is required")

    now = to_naive_utc(now) if now is not None else utcnow()
    namespace = get_settings().POST_IMAGE_BUCKET

    paths: list[str] = []
    if images:
        storage = storage or get_storage_provider()
        try:
            for image in images:
                path = storage.generate_path(user_id, image.content_type)
                storage.upload(namespace, path, image.content, image.content_type)
                paths.append(path)
        except StorageUnavailable:
            _discard_uploads(storage, namespace, paths)
            raise

    urls = image_urls_for_paths(paths, namespace, storage) if paths else []

    post = Post(
        user_id=user_id,
        created_at=now,
        expires_at=now + POST_TTL,
        title=title,
        body=body.strip(),
        area=area,
        category=category,
        latitude=latitude,
        longitude=longitude,
        image_bucket=namespace,
        image_paths=paths or None,
        image_urls=urls or None,
        image_url=urls[0] if urls else None,
    )

    try:
        db.add(post)
        db.commit()
        db.refresh(post)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to insert post for user {user_id}: {e}")
        if paths:
            _discard_uploads(storage, namespace, paths)
        raise StoreUnavailable(f"Failed to create post: {e}") from e

    logger.info(f"Created post {post.id} with {len(paths)} images", extra={"event": "post_created", "post_id": str(post.id)})
    return post


def list_posts(
    db: Session,
    user_id: str | None = None,
    category: str | None = None,
    limit: int = 30,
    offset: int = 0,
    now: datetime | None = None,
) -> list[Post]:
    """
    List alive posts, newest first.

    The SQL filter narrows the page; filter_alive is the authoritative check
    and always runs.
    """
    now = to_naive_utc(now) if now is not None else utcnow()

    query = db.query(Post).filter(
        or_(
            Post.expires_at > now,
            and_(Post.expires_at.is_(None), Post.created_at > implicit_expiry_cutoff(now)),
        )
    )
    if user_id:
        query = query.filter(Post.user_id == user_id)
    if category:
        query = query.filter(Post.category == category)

    try:
        rows = query.order_by(Post.created_at.desc()).offset(offset).limit(limit).all()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to list posts: {e}") from e

    return filter_alive(rows, now)


def image_urls_for_paths(paths: list[str], namespace: str, storage: StorageProvider) -> list[str]:
    refs = object_refs_from_row(paths, namespace)
    return [storage.public_url(ref) for ref in refs]


def image_urls_for(post: Post, storage: StorageProvider | None = None) -> list[str]:
    """
    Resolve display URLs for a post.

    Owned paths win; rows that only carry legacy URL fields fall back to those.
    """
    if normalize_paths(post.image_paths):
        storage = storage or get_storage_provider()
        return [storage.public_url(ref) for ref in object_refs_from_row(post.image_paths, post.image_bucket)]

    if isinstance(post.image_urls, list):
        return [u for u in post.image_urls if isinstance(u, str) and u]
    if post.image_url:
        return [post.image_url]
    return []
