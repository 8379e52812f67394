# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
import uuid
from datetime import datetime, timedelta

import pytest

# Set test environment before any nabolag import reads settings
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("STORAGE_PROVIDER", "local")
os.environ.setdefault("POST_IMAGE_BUCKET", "opslagsbilleder")
os.environ.setdefault("LOG_FORMAT", "text")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from nabolag.database import Base
from nabolag.models import Post
from nabolag.storage.factory import reset_storage_provider, set_storage_provider
from nabolag.storage.local_provider import LocalStorageProvider

BUCKET = "opslagsbilleder"
T0 = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    """Local storage provider installed as the process-wide provider."""
    provider = LocalStorageProvider(base_path=str(tmp_path / "storage"), public_base_url="https://cdn.test")
    set_storage_provider(provider)
    yield provider
    reset_storage_provider()


@pytest.fixture
def make_post(db, storage):
    """
    Insert a post row and upload its images.

    expires_at defaults to created_at + 14 days, as the API writes it;
    pass expires_at=None explicitly for a legacy row without one.
    """
    _unset = object()

    def _make(
        created_at=T0,
        expires_at=_unset,
        paths=(),
        user_id="user-a",
        bucket=BUCKET,
        upload=True,
        **fields,
    ):
        if expires_at is _unset:
            expires_at = created_at + timedelta(days=14)
        if upload:
            for path in paths:
                storage.upload(bucket, path, b"img")
        post = Post(
            id=uuid.uuid4(),
            user_id=user_id,
            created_at=created_at,
            expires_at=expires_at,
            title=fields.pop("title", "Cykel til salg"),
            body=fields.pop("body", ""),
            image_bucket=bucket,
            image_paths=list(paths) or None,
            **fields,
        )
        db.add(post)
        db.commit()
        return post

    return _make
