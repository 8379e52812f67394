# nabolag/services/lifecycle/items.py
"""
Store-boundary mapping for posts.

Post rows carry loosely shaped image columns (null, a bare string, a list with
blanks, legacy URL fields). They are normalized exactly once, here, into a
ContentItem with a flat list of ObjectRefs; nothing past this module looks at
the raw image columns again.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from nabolag.config import get_settings
from nabolag.models import Post
from nabolag.storage.base import ObjectRef
from nabolag.utils.clock import to_naive_utc


@dataclass
class ContentItem:
    """A post as the lifecycle sees it."""

    id: uuid.UUID
    owner_id: str
    created_at: datetime
    expires_at: datetime | None = None
    object_refs: list[ObjectRef] = field(default_factory=list)


def default_namespace() -> str:
    """Namespace used when a row or queue entry does not name one."""
    return get_settings().POST_IMAGE_BUCKET


def normalize_paths(raw: Any) -> list[str]:
    """
    Normalize a stored image_paths value into a clean list of paths.

    Accepts None, a single string, or a list; drops blanks and non-strings;
    removes duplicates while keeping the first occurrence.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return []

    seen: set[str] = set()
    paths: list[str] = []
    for p in raw:
        if not isinstance(p, str):
            continue
        p = p.strip()
        if not p or p in seen:
            continue
        seen.add(p)
        paths.append(p)
    return paths


def object_refs_from_row(image_paths: Any, image_bucket: str | None = None) -> list[ObjectRef]:
    """Build the owned object refs for one row."""
    namespace = image_bucket or default_namespace()
    return [ObjectRef(namespace=namespace, path=p) for p in normalize_paths(image_paths)]


def to_content_item(row: Post) -> ContentItem:
    """Map a Post row onto a ContentItem."""
    return ContentItem(
        id=row.id,
        owner_id=row.user_id,
        created_at=to_naive_utc(row.created_at),
        expires_at=to_naive_utc(row.expires_at) if row.expires_at else None,
        object_refs=object_refs_from_row(row.image_paths, row.image_bucket),
    )


def unique_refs(items: Iterable[ContentItem]) -> list[ObjectRef]:
    """All refs across items, de-duplicated, in first-seen order."""
    seen: set[ObjectRef] = set()
    refs: list[ObjectRef] = []
    for item in items:
        for ref in item.object_refs:
            if ref not in seen:
                seen.add(ref)
                refs.append(ref)
    return refs


def group_by_namespace(refs: Iterable[ObjectRef]) -> dict[str, list[str]]:
    """Group refs into {namespace: [paths]} preserving order."""
    groups: dict[str, list[str]] = {}
    for ref in refs:
        groups.setdefault(ref.namespace, []).append(ref.path)
    return groups
