# nabolag/routers/admin_lifecycle.py
"""
Admin endpoints for the post lifecycle jobs.

Meant to be hit by an external scheduler; runs must not overlap.

POST /v1/admin/lifecycle/prune   - Delete expired posts and their images (?dry=1 to preview)
POST /v1/admin/lifecycle/drain   - Empty the storage deletion queue
GET  /v1/admin/lifecycle/status  - Expired candidates and queue depth
"""

import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from nabolag.auth import require_admin_key
from nabolag.config import get_settings
from nabolag.database import get_db
from nabolag.schemas.lifecycle import (
    DrainResponse,
    LifecycleStatusResponse,
    PruneResponse,
)
from nabolag.services.lifecycle import (
    count_expired,
    drain_queue,
    prune_expired_posts,
    queue_depth,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/lifecycle", tags=["admin-lifecycle"])


@router.post("/prune", response_model=PruneResponse)
def trigger_prune(
    response: Response,
    dry: bool = Query(False, description="Preview only, mutate nothing"),
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> PruneResponse:
    """
    Delete expired posts.

    Images are removed before their rows; rows whose images could not be
    removed are kept for the next run. Returns 500 when a database error
    aborted the run.
    """
    result = prune_expired_posts(db, dry_run=dry)
    if not result.success:
        response.status_code = 500

    return PruneResponse(
        success=result.success,
        dry_run=result.dry_run,
        deleted_count=result.deleted_count,
        removed_object_count=result.removed_object_count,
        ids=result.ids,
        skipped_ids=result.skipped_ids,
        iterations=result.iterations,
        errors=result.errors,
    )


@router.post("/drain", response_model=DrainResponse)
def trigger_drain(
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> DrainResponse:
    """
    Empty the storage deletion queue.

    Namespaces whose removal failed keep their queue rows for the next run.
    """
    result = drain_queue(db)
    if not result.success:
        response.status_code = 500

    return DrainResponse(
        success=result.success,
        removed_count=result.removed_count,
        queue_rows_deleted=result.queue_rows_deleted,
        iterations=result.iterations,
        failed_namespaces=result.failed_namespaces,
        errors=result.errors,
    )


@router.get("/status", response_model=LifecycleStatusResponse)
def get_status(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> LifecycleStatusResponse:
    """
    Pending lifecycle work: expired posts awaiting prune and queued removals.
    """
    depth = queue_depth(db)
    return LifecycleStatusResponse(
        expired_posts=count_expired(db),
        queue_depth=depth,
        queue_total=sum(depth.values()),
        delete_mode=get_settings().DELETE_MODE,
    )
