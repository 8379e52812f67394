# nabolag/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.
"""

from nabolag.schemas.lifecycle import (
    DrainResponse,
    LifecycleStatusResponse,
    PruneResponse,
)
from nabolag.schemas.posts import (
    PostCreateRequest,
    PostDeleteResponse,
    PostListResponse,
    PostResponse,
)

__all__ = [
    # Posts
    "PostCreateRequest",
    "PostResponse",
    "PostListResponse",
    "PostDeleteResponse",
    # Lifecycle
    "PruneResponse",
    "DrainResponse",
    "LifecycleStatusResponse",
]
