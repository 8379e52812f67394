# nabolag/services/lifecycle/delete_service.py
"""
Direct, user-initiated post deletion.

Unlike the prune job, a failed image removal never blocks the delete: the
user-visible action wins. Images that could not be confirmed removed are put
on the deletion queue in the same transaction that deletes the row, so the
drain job reclaims them later instead of leaving them orphaned for good.

With DELETE_MODE=deferred no inline removal is attempted at all; every image
goes through the queue.
"""

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nabolag.config import get_settings
from nabolag.errors import Forbidden, NotFound, StorageUnavailable, StoreUnavailable
from nabolag.logging_config import log_storage_operation
from nabolag.models import Post
from nabolag.services.lifecycle.deletion_queue import enqueue_refs
from nabolag.services.lifecycle.items import group_by_namespace, to_content_item
from nabolag.storage.base import ObjectRef, StorageProvider
from nabolag.storage.factory import get_storage_provider

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    """Result of a direct delete."""

    ok: bool
    post_id: str
    removed_object_count: int = 0
    queued_object_count: int = 0
    errors: list[str] = field(default_factory=list)


def delete_post(
    db: Session,
    post_id: uuid.UUID,
    requesting_user_id: str,
    storage: StorageProvider | None = None,
    mode: str | None = None,
) -> DeleteResult:
    """
    Delete a post owned by the requesting user, images first.

    Raises:
        NotFound: the post does not exist (or was deleted concurrently)
        Forbidden: the post belongs to someone else; nothing is touched
        StoreUnavailable: the relational store failed
    """
    try:
        row = db.get(Post, post_id)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to load post {post_id}: {e}") from e

    if row is None:
        raise NotFound(f"Post {post_id} not found")
    if row.user_id != requesting_user_id:
        logger.warning(f"User {requesting_user_id} tried to delete post {post_id} owned by someone else")
        raise Forbidden(f"Post {post_id} is not owned by the requesting user")

    item = to_content_item(row)
    result = DeleteResult(ok=True, post_id=str(item.id))
    mode = mode or get_settings().DELETE_MODE

    unconfirmed: list[ObjectRef] = list(item.object_refs)
    if mode == "inline" and item.object_refs:
        storage = storage or get_storage_provider()
        confirmed: set[ObjectRef] = set()

        for namespace, paths in group_by_namespace(item.object_refs).items():
            try:
                with log_storage_operation("remove", namespace, len(paths)) as metrics:
                    removed = storage.remove(namespace, paths)
                    metrics["items_processed"] = len(removed)
            except StorageUnavailable as e:
                logger.warning(f"Delete post {item.id}: image removal failed in {namespace}, queueing: {e}")
                result.errors.append(f"{namespace}: {e}")
                continue
            confirmed.update(ObjectRef(namespace=namespace, path=p) for p in removed)

        unconfirmed = [ref for ref in item.object_refs if ref not in confirmed]
        result.removed_object_count = len(item.object_refs) - len(unconfirmed)

    try:
        result.queued_object_count = enqueue_refs(db, unconfirmed)
        deleted = db.query(Post).filter(Post.id == item.id).delete(synchronize_session=False)
        if deleted == 0:
            db.rollback()
            raise NotFound(f"Post {post_id} not found")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Delete post {item.id}: row delete failed: {e}")
        raise StoreUnavailable(f"Failed to delete post {post_id}: {e}") from e

    logger.info(
        f"Deleted post {item.id} ({result.removed_object_count} images removed, "
        f"{result.queued_object_count} queued, mode={mode})",
        extra={"event": "post_deleted", "post_id": str(item.id)},
    )
    return result
