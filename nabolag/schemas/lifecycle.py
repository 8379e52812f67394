# nabolag/schemas/lifecycle.py
"""
Schemas for admin lifecycle job endpoints.
"""

from pydantic import BaseModel, Field


class PruneResponse(BaseModel):
    """Prune run result."""

    success: bool
    dry_run: bool
    deleted_count: int
    removed_object_count: int
    ids: list[str]
    skipped_ids: list[str] = Field(default_factory=list)
    iterations: int
    errors: list[str] = Field(default_factory=list)


class DrainResponse(BaseModel):
    """Queue drain result."""

    success: bool
    removed_count: int
    queue_rows_deleted: int
    iterations: int
    failed_namespaces: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class LifecycleStatusResponse(BaseModel):
    """Pending lifecycle work."""

    expired_posts: dict[str, int]
    queue_depth: dict[str, int]
    queue_total: int
    delete_mode: str
