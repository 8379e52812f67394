# nabolag/services/lifecycle/prune_service.py
"""
Prune service: periodic batch removal of expired posts.

Per iteration:
1. Fetch expired candidates with two queries (explicit expires_at <= now,
   and null expires_at with created_at <= now - TTL), union by id
2. Collect the de-duplicated image refs of the batch
3. Remove the images per namespace in fixed-size chunks
4. Delete only rows whose every image was confirmed removed; rows touching a
   failed chunk stay for the next run
5. Repeat while a query came back full, up to a fixed loop cap

The loop cap is a safety bound against pathological backlogs. Correctness
comes from idempotence: re-scanning still-expired rows is always safe.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nabolag.constants import LifecycleDefaults
from nabolag.errors import StorageUnavailable
from nabolag.logging_config import log_stage, log_storage_operation
from nabolag.models import Post
from nabolag.services.lifecycle.expiration import implicit_expiry_cutoff
from nabolag.services.lifecycle.items import (
    ContentItem,
    group_by_namespace,
    to_content_item,
    unique_refs,
)
from nabolag.storage.base import ObjectRef, StorageProvider
from nabolag.storage.factory import get_storage_provider
from nabolag.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    """Result of a prune run."""

    success: bool
    dry_run: bool = False
    deleted_count: int = 0
    removed_object_count: int = 0
    ids: list[str] = field(default_factory=list)
    removed_paths: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)
    iterations: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class CandidateBatch:
    """One fetch of expired candidates."""

    items: list[ContentItem]
    full: bool  # at least one query hit its limit


def fetch_expired_batch(
    db: Session,
    now: datetime,
    limit: int = LifecycleDefaults.PRUNE_ROWS_LIMIT,
    exclude_ids: set[uuid.UUID] | None = None,
) -> CandidateBatch:
    """
    Fetch up to `limit` rows from each expiry query, deduplicated by id.

    The implicit-TTL case cannot be expressed as a single indexed comparison
    against a nullable column, hence two queries.
    """
    cutoff = implicit_expiry_cutoff(now)

    explicit_q = db.query(Post).filter(Post.expires_at.isnot(None), Post.expires_at <= now)
    implicit_q = db.query(Post).filter(Post.expires_at.is_(None), Post.created_at <= cutoff)
    if exclude_ids:
        explicit_q = explicit_q.filter(Post.id.notin_(list(exclude_ids)))
        implicit_q = implicit_q.filter(Post.id.notin_(list(exclude_ids)))

    explicit_rows = explicit_q.order_by(Post.expires_at.asc()).limit(limit).all()
    implicit_rows = implicit_q.order_by(Post.created_at.asc()).limit(limit).all()

    seen: set[uuid.UUID] = set()
    items: list[ContentItem] = []
    for row in [*explicit_rows, *implicit_rows]:
        if row.id in seen:
            continue
        seen.add(row.id)
        items.append(to_content_item(row))

    return CandidateBatch(
        items=items,
        full=len(explicit_rows) >= limit or len(implicit_rows) >= limit,
    )


def _remove_objects(
    storage: StorageProvider,
    refs: list[ObjectRef],
    chunk_size: int,
    result: PruneResult,
) -> set[ObjectRef]:
    """Remove refs chunk by chunk. Returns the refs confirmed removed."""
    confirmed: set[ObjectRef] = set()

    for namespace, paths in group_by_namespace(refs).items():
        for i in range(0, len(paths), chunk_size):
            chunk = paths[i:i + chunk_size]
            try:
                with log_storage_operation("remove", namespace, len(chunk)) as metrics:
                    removed = storage.remove(namespace, chunk)
                    metrics["items_processed"] = len(removed)
            except StorageUnavailable as e:
                # Rows owning these objects are left for the next run
                logger.error(f"Prune: storage remove failed for {len(chunk)} objects in {namespace}: {e}")
                result.errors.append(f"{namespace}: {e}")
                continue

            chunk_set = set(chunk)
            for path in removed:
                if path in chunk_set:
                    confirmed.add(ObjectRef(namespace=namespace, path=path))

    return confirmed


def prune_expired_posts(
    db: Session,
    storage: StorageProvider | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
    rows_limit: int = LifecycleDefaults.PRUNE_ROWS_LIMIT,
    storage_chunk: int = LifecycleDefaults.PRUNE_STORAGE_CHUNK,
    max_loops: int = LifecycleDefaults.PRUNE_MAX_LOOPS,
) -> PruneResult:
    """
    Delete expired posts and their images.

    Dry run fetches candidates and reports what would be deleted without
    touching either store. A relational error aborts the run with
    success=False; storage errors only hold back the affected rows.
    """
    now = to_naive_utc(now) if now is not None else utcnow()
    storage = storage if storage is not None or dry_run else get_storage_provider()
    result = PruneResult(success=True, dry_run=dry_run)

    # Rows handled earlier in this run (deleted, skipped, or dry-run reported)
    handled: set[uuid.UUID] = set()

    with log_stage("prune", trace_id=uuid.uuid4().hex):
        for _ in range(max_loops):
            try:
                batch = fetch_expired_batch(db, now, limit=rows_limit, exclude_ids=handled)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Prune: candidate fetch failed: {e}")
                result.success = False
                result.errors.append(f"select expired posts failed: {e}")
                break

            if not batch.items:
                break
            result.iterations += 1
            handled.update(item.id for item in batch.items)

            if not _prune_batch(db, storage, batch.items, storage_chunk, dry_run, result):
                break

            if not batch.full:
                break
        else:
            logger.warning(f"Prune stopped at loop cap ({max_loops}); remaining candidates wait for the next run")

    logger.info(
        f"Prune complete: {result.deleted_count} posts deleted, "
        f"{result.removed_object_count} objects removed, "
        f"{len(result.skipped_ids)} held back (dry_run={dry_run})",
        extra={
            "event": "prune_complete",
            "items_processed": result.deleted_count,
            "items_failed": len(result.skipped_ids),
            "dry_run": dry_run,
        },
    )
    return result


def _prune_batch(
    db: Session,
    storage: StorageProvider | None,
    items: list[ContentItem],
    storage_chunk: int,
    dry_run: bool,
    result: PruneResult,
) -> bool:
    """Prune one candidate batch. Returns False when the run must abort."""
    refs = unique_refs(items)

    if dry_run:
        result.deleted_count += len(items)
        result.ids.extend(str(item.id) for item in items)
        result.removed_object_count += len(refs)
        result.removed_paths.extend(ref.path for ref in refs)
        return True

    confirmed = _remove_objects(storage, refs, storage_chunk, result) if refs else set()

    deletable = [item for item in items if all(ref in confirmed for ref in item.object_refs)]
    deletable_ids = {item.id for item in deletable}
    held_back = [item for item in items if item.id not in deletable_ids]
    for item in held_back:
        logger.warning(f"Prune: keeping post {item.id}, its images were not all removed", extra={"post_id": str(item.id)})
        result.skipped_ids.append(str(item.id))

    # Objects are gone even if the row delete below fails; removal is idempotent
    removed_refs = [ref for ref in refs if ref in confirmed]
    result.removed_object_count += len(removed_refs)
    result.removed_paths.extend(ref.path for ref in removed_refs)

    if not deletable:
        return True

    ids = [item.id for item in deletable]
    try:
        db.query(Post).filter(Post.id.in_(ids)).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Prune: deleting {len(ids)} rows failed, aborting run: {e}")
        result.success = False
        result.errors.append(f"delete rows failed: {e}")
        return False

    result.deleted_count += len(ids)
    result.ids.extend(str(i) for i in ids)
    return True


def count_expired(db: Session, now: datetime | None = None) -> dict[str, int]:
    """Count prune candidates by expiry kind (status endpoints and CLI)."""
    now = to_naive_utc(now) if now is not None else utcnow()
    explicit = (
        db.query(Post)
        .filter(Post.expires_at.isnot(None), Post.expires_at <= now)
        .count()
    )
    implicit = (
        db.query(Post)
        .filter(Post.expires_at.is_(None), Post.created_at <= implicit_expiry_cutoff(now))
        .count()
    )
    return {"explicit": explicit, "implicit": implicit, "total": explicit + implicit}
