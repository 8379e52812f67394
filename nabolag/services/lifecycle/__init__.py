# nabolag/services/lifecycle/__init__.py
"""
Post lifecycle and deferred-deletion garbage collection.

A post lives 14 days. Expired posts are hidden at read time immediately and
reclaimed later by the prune job; images are removed before the rows that own
them. Deletions that cannot confirm image removal inline go through a durable
queue that the drain job empties.

Services:
- expiration: effective expiry, liveness check, read filter
- items: store-boundary mapping from Post rows to ContentItem
- delete_service: ownership-checked direct delete
- prune_service: periodic expired-post collector
- deletion_queue: enqueue + drain job
"""

from nabolag.services.lifecycle.deletion_queue import (
    DrainResult,
    drain_queue,
    enqueue,
    enqueue_refs,
    queue_depth,
)
from nabolag.services.lifecycle.delete_service import DeleteResult, delete_post
from nabolag.services.lifecycle.expiration import (
    effective_expiry,
    filter_alive,
    is_alive,
)
from nabolag.services.lifecycle.items import ContentItem, to_content_item
from nabolag.services.lifecycle.prune_service import (
    PruneResult,
    count_expired,
    prune_expired_posts,
)

__all__ = [
    # Expiration
    "effective_expiry",
    "is_alive",
    "filter_alive",
    # Items
    "ContentItem",
    "to_content_item",
    # Direct delete
    "delete_post",
    "DeleteResult",
    # Prune
    "prune_expired_posts",
    "count_expired",
    "PruneResult",
    # Queue
    "enqueue",
    "enqueue_refs",
    "drain_queue",
    "queue_depth",
    "DrainResult",
]
