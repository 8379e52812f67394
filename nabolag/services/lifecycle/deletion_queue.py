# nabolag/services/lifecycle/deletion_queue.py
"""
Durable deletion queue for object storage.

Deletion paths that cannot confirm object removal inline append a row per
object. The drain job empties the queue page by page:

1. Fetch a page of queue rows ordered by id
2. Group by namespace, one batch-remove call per namespace
3. Delete the queue rows of a namespace only after its remove call succeeded
4. A failed namespace keeps its rows (retried next run) and is skipped for
   the rest of this run; other namespaces carry on
5. Stop when a page comes back empty

Removal is idempotent, so a row whose delete failed after a successful remove
is simply removed again next run.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nabolag.constants import LifecycleDefaults
from nabolag.errors import StorageUnavailable
from nabolag.logging_config import log_stage, log_storage_operation
from nabolag.models import StorageDeleteQueue
from nabolag.services.lifecycle.items import default_namespace
from nabolag.storage.base import ObjectRef, StorageProvider
from nabolag.storage.factory import get_storage_provider

logger = logging.getLogger(__name__)


@dataclass
class DrainResult:
    """Result of a queue drain run."""

    success: bool
    removed_count: int = 0
    queue_rows_deleted: int = 0
    iterations: int = 0
    failed_namespaces: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Enqueue
# -----------------------------------------------------------------------------


def enqueue(db: Session, namespace: str | None, path: str) -> StorageDeleteQueue:
    """
    Append one pending removal.

    Flushes but does not commit, so callers can make the enqueue atomic with
    the row delete that requested it. Duplicates are allowed.
    """
    entry = StorageDeleteQueue(bucket=namespace, path=path)
    db.add(entry)
    db.flush()
    return entry


def enqueue_refs(db: Session, refs: Iterable[ObjectRef]) -> int:
    """Append one pending removal per ref. Returns the number enqueued."""
    count = 0
    for ref in refs:
        db.add(StorageDeleteQueue(bucket=ref.namespace, path=ref.path))
        count += 1
    if count:
        db.flush()
    return count


def _namespace_expr(fallback: str):
    """SQL expression for an entry's effective namespace (blank/null -> fallback)."""
    return func.coalesce(func.nullif(StorageDeleteQueue.bucket, ""), fallback)


def queue_depth(db: Session) -> dict[str, int]:
    """Pending queue entries per namespace."""
    ns = _namespace_expr(default_namespace())
    rows = db.query(ns, func.count(StorageDeleteQueue.id)).group_by(ns).all()
    return {namespace: count for namespace, count in rows}


# -----------------------------------------------------------------------------
# Drain
# -----------------------------------------------------------------------------


def _fetch_page(db: Session, page_size: int, skip_namespaces: set[str], fallback: str) -> list[StorageDeleteQueue]:
    query = db.query(StorageDeleteQueue)
    if skip_namespaces:
        query = query.filter(_namespace_expr(fallback).notin_(skip_namespaces))
    return query.order_by(StorageDeleteQueue.id.asc()).limit(page_size).all()


def drain_queue(
    db: Session,
    storage: StorageProvider | None = None,
    page_size: int = LifecycleDefaults.DRAIN_PAGE_SIZE,
    max_loops: int = LifecycleDefaults.DRAIN_MAX_LOOPS,
) -> DrainResult:
    """
    Empty the deletion queue.

    Storage failures are recovered by leaving the namespace's rows in place.
    A failure reading or deleting queue rows aborts the run with success=False.
    """
    storage = storage or get_storage_provider()
    fallback = default_namespace()
    result = DrainResult(success=True)
    failed: set[str] = set()

    with log_stage("drain", trace_id=uuid.uuid4().hex):
        for _ in range(max_loops):
            try:
                rows = _fetch_page(db, page_size, failed, fallback)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to fetch deletion queue page: {e}")
                result.success = False
                result.errors.append(f"fetch queue failed: {e}")
                break

            if not rows:
                break
            result.iterations += 1

            groups: dict[str, list[StorageDeleteQueue]] = {}
            for row in rows:
                groups.setdefault(row.bucket or fallback, []).append(row)

            if not _drain_groups(db, storage, groups, failed, result):
                break
        else:
            logger.warning(f"Drain stopped at loop cap ({max_loops}); remaining entries wait for the next run")

    logger.info(
        f"Drain complete: {result.removed_count} objects removed, "
        f"{result.queue_rows_deleted} queue rows cleared, "
        f"{len(result.failed_namespaces)} namespaces failed",
        extra={"event": "drain_complete", "items_processed": result.removed_count},
    )
    return result


def _drain_groups(
    db: Session,
    storage: StorageProvider,
    groups: dict[str, list[StorageDeleteQueue]],
    failed: set[str],
    result: DrainResult,
) -> bool:
    """Process one page. Returns False when the run must abort."""
    for namespace, entries in groups.items():
        paths = list(dict.fromkeys(e.path for e in entries))

        try:
            with log_storage_operation("remove", namespace, len(paths)) as metrics:
                removed = storage.remove(namespace, paths)
                metrics["items_processed"] = len(removed)
        except StorageUnavailable as e:
            logger.error(f"Queue drain: remove failed for {namespace}, keeping {len(entries)} entries: {e}")
            failed.add(namespace)
            result.failed_namespaces.append(namespace)
            result.errors.append(f"{namespace}: {e}")
            continue

        confirmed = set(removed)
        done_ids = [e.id for e in entries if e.path in confirmed]
        unconfirmed = [p for p in paths if p not in confirmed]
        if unconfirmed:
            # Keep those rows; skip the namespace so the run does not spin on them
            logger.warning(f"Queue drain: {len(unconfirmed)} objects in {namespace} not confirmed removed")
            failed.add(namespace)
            result.failed_namespaces.append(namespace)
            result.errors.append(f"{namespace}: {len(unconfirmed)} objects not confirmed removed")

        if not done_ids:
            continue

        try:
            deleted = (
                db.query(StorageDeleteQueue)
                .filter(StorageDeleteQueue.id.in_(done_ids))
                .delete(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Queue drain: failed to clear {len(done_ids)} entries for {namespace}: {e}")
            result.success = False
            result.errors.append(f"delete queue rows failed: {e}")
            return False

        result.removed_count += len(paths) - len(unconfirmed)
        result.queue_rows_deleted += deleted

    return True
