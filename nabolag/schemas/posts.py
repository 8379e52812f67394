# nabolag/schemas/posts.py
"""
Schemas for post endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from nabolag.constants import PostLimits


class PostCreateRequest(BaseModel):
    """Request to create a post."""

    title: str = Field(..., min_length=1, max_length=PostLimits.TITLE_MAX_CHARS)
    body: str = Field("", max_length=PostLimits.BODY_MAX_CHARS)
    area: str | None = Field(None, max_length=255, description="Free-text neighborhood/area name")
    category: str | None = Field(None, max_length=64)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    images: list[str] = Field(
        default_factory=list,
        max_length=PostLimits.MAX_IMAGES,
        description="Base64 encoded images (optionally as data URIs)",
    )


class PostResponse(BaseModel):
    """A post as returned to clients."""

    id: str
    user_id: str
    created_at: datetime
    expires_at: datetime | None
    title: str
    body: str
    area: str | None = None
    category: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    images: list[str] = Field(default_factory=list)
    image_url: str | None = None


class PostListResponse(BaseModel):
    """Page of alive posts."""

    items: list[PostResponse]
    count: int


class PostDeleteResponse(BaseModel):
    """Direct delete result. Image removal failures are not errors here."""

    ok: bool
    post_id: str
    removed_object_count: int
    queued_object_count: int
