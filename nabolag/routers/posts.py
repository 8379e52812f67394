# nabolag/routers/posts.py
"""
Post endpoints.

POST   /v1/posts            - Create a post (expires 14 days from now)
GET    /v1/posts            - List alive posts, expired ones are always filtered out
DELETE /v1/posts/{post_id}  - Delete your own post and its images
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from nabolag.auth import require_user_id
from nabolag.database import get_db
from nabolag.errors import Forbidden, NotFound, StorageUnavailable, StoreUnavailable
from nabolag.models import Post
from nabolag.schemas.posts import (
    PostCreateRequest,
    PostDeleteResponse,
    PostListResponse,
    PostResponse,
)
from nabolag.services.lifecycle import delete_post
from nabolag.services.posts_service import (
    create_post,
    decode_image,
    image_urls_for,
    list_posts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/posts", tags=["posts"])


def _to_response(post: Post) -> PostResponse:
    urls = image_urls_for(post)
    return PostResponse(
        id=str(post.id),
        user_id=post.user_id,
        created_at=post.created_at,
        expires_at=post.expires_at,
        title=post.title,
        body=post.body or "",
        area=post.area,
        category=post.category,
        latitude=post.latitude,
        longitude=post.longitude,
        images=urls,
        image_url=urls[0] if urls else None,
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def submit_post(
    request: PostCreateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> PostResponse:
    """
    Create a post.

    Images are uploaded before the row is written; the post expires
    14 days after creation.
    """
    try:
        images = [decode_image(payload) for payload in request.images]
        post = create_post(
            db,
            user_id=user_id,
            title=request.title,
            body=request.body,
            area=request.area,
            category=request.category,
            latitude=request.latitude,
            longitude=request.longitude,
            images=images,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (StorageUnavailable, StoreUnavailable) as e:
        raise HTTPException(status_code=503, detail=str(e))

    return _to_response(post)


@router.get("", response_model=PostListResponse)
def get_posts(
    db: Session = Depends(get_db),
    user_id: str | None = Query(None, description="Only posts by this user"),
    category: str | None = Query(None),
    limit: int = Query(30, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> PostListResponse:
    """
    List alive posts, newest first.
    """
    try:
        posts = list_posts(db, user_id=user_id, category=category, limit=limit, offset=offset)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    items = [_to_response(p) for p in posts]
    return PostListResponse(items=items, count=len(items))


@router.delete("/{post_id}", response_model=PostDeleteResponse)
def remove_post(
    post_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> PostDeleteResponse:
    """
    Delete a post you own.

    Image removal failures never fail the request; those images are queued
    for the drain job instead.
    """
    try:
        result = delete_post(db, post_id, user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Forbidden as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    return PostDeleteResponse(
        ok=result.ok,
        post_id=result.post_id,
        removed_object_count=result.removed_object_count,
        queued_object_count=result.queued_object_count,
    )
