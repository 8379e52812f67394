"""
Nabolag content lifecycle database models

Tables:
- Post: Neighborhood posts (opslag), images live in object storage
- StorageDeleteQueue: Durable retry markers for pending object removals
"""

import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Index,
    BigInteger,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB

from nabolag.database import Base
from nabolag.utils.clock import utcnow


# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# -----------------------------------------------------------------------------
# Post
# -----------------------------------------------------------------------------

class Post(Base):
    """
    Neighborhood posts - metadata in Postgres, images in object storage.

    Lifecycle:
    - expires_at is set to created_at + 14 days on creation
    - expires_at is nullable; rows without it expire 14 days after created_at
    - image_paths are the storage paths this post exclusively owns
    - image_url / image_urls are read conveniences (public URLs), never owned paths
    """
    __tablename__ = "posts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    # Content
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False, default="")
    area = Column(String(255), nullable=True)
    category = Column(String(64), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Images: storage references (owned) + legacy URL fields (display only)
    image_bucket = Column(String(128), nullable=True)  # None = POST_IMAGE_BUCKET
    image_paths = Column(JSONType, nullable=True)  # list[str] of object paths
    image_url = Column(Text, nullable=True)
    image_urls = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_posts_expires_at", "expires_at"),
        Index("ix_posts_created_at", "created_at"),
        Index("ix_posts_user_id", "user_id"),
    )


# -----------------------------------------------------------------------------
# StorageDeleteQueue
# -----------------------------------------------------------------------------

class StorageDeleteQueue(Base):
    """
    Pending object-storage removals.

    Rows are appended by deletion paths that cannot confirm removal inline and
    are deleted only by the drain job after the batch remove succeeded.
    """
    __tablename__ = "storage_delete_queue"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    bucket = Column(String(128), nullable=True)  # None = POST_IMAGE_BUCKET
    path = Column(Text, nullable=False)
    enqueued_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_storage_delete_queue_bucket", "bucket"),
    )
