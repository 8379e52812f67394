# nabolag/services/lifecycle/expiration.py
"""
Post expiration policy and the read-time filter.

A post is alive until its effective expiry: the explicit expires_at when set,
otherwise created_at + POST_TTL. The read filter applies the same rule to every
collection returned to clients, so an expired post disappears the moment it
expires, whether or not the prune job has reclaimed it yet.
"""

from datetime import datetime
from typing import Iterable, Protocol, TypeVar

from nabolag.constants import POST_TTL
from nabolag.utils.clock import to_naive_utc, utcnow


class Expirable(Protocol):
    created_at: datetime
    expires_at: datetime | None


T = TypeVar("T", bound=Expirable)


def effective_expiry(item: Expirable) -> datetime:
    """Resolved expiry used by every liveness check."""
    if item.expires_at is not None:
        return to_naive_utc(item.expires_at)
    return to_naive_utc(item.created_at) + POST_TTL


def is_alive(item: Expirable, now: datetime | None = None) -> bool:
    """True while now is strictly before the effective expiry."""
    now = to_naive_utc(now) if now is not None else utcnow()
    return effective_expiry(item) > now


def filter_alive(items: Iterable[T], now: datetime | None = None) -> list[T]:
    """Keep only alive items, preserving order."""
    now = to_naive_utc(now) if now is not None else utcnow()
    return [item for item in items if is_alive(item, now)]


def implicit_expiry_cutoff(now: datetime | None = None) -> datetime:
    """Rows without expires_at created at or before this instant are expired."""
    now = to_naive_utc(now) if now is not None else utcnow()
    return now - POST_TTL
