"""Unit tests for post creation and listing."""

import base64
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from nabolag.errors import StorageUnavailable, StoreUnavailable
from nabolag.models import Post
from nabolag.services.posts_service import (
    PreparedImage,
    create_post,
    decode_image,
    image_urls_for,
    list_posts,
)
from nabolag.storage.base import ContentType

BUCKET = "opslagsbilleder"
T0 = datetime(2026, 3, 1, 12, 0, 0)
PNG = base64.b64encode(b"\x89PNG fake").decode()


class TestDecodeImage:
    """Tests for decode_image()."""

    def test_plain_base64_defaults_to_jpeg(self):
        image = decode_image(PNG)
        assert image.content == b"\x89PNG fake"
        assert image.content_type == ContentType.IMAGE_JPEG

    def test_data_uri(self):
        image = decode_image(f"data:image/png;base64,{PNG}")
        assert image.content_type == ContentType.IMAGE_PNG

    def test_unsupported_type(self):
        with pytest.raises(ValueError, match="Unsupported"):
            decode_image(f"data:image/gif;base64,{PNG}")

    def test_invalid_base64(self):
        with pytest.raises(ValueError):
            decode_image("not base64!!")

    def test_empty(self):
        with pytest.raises(ValueError):
            decode_image("")


class TestCreatePost:
    """Tests for create_post()."""

    def test_sets_expiry_and_uploads(self, db, storage):
        post = create_post(
            db,
            user_id="user-a",
            title="  Sofa gives væk  ",
            images=[PreparedImage(b"one"), PreparedImage(b"two", ContentType.IMAGE_PNG)],
            storage=storage,
            now=T0,
        )

        assert post.title == "Sofa gives væk"
        assert post.created_at == T0
        assert post.expires_at == T0 + timedelta(days=14)
        assert post.image_bucket == BUCKET
        assert len(post.image_paths) == 2
        assert all(p.startswith("user-a/") for p in post.image_paths)
        assert post.image_paths[1].endswith(".png")
        assert sorted(storage.list_all(BUCKET)) == sorted(post.image_paths)
        assert post.image_url == post.image_urls[0]

    def test_rejects_blank_title(self, db, storage):
        with pytest.raises(ValueError):
            create_post(db, user_id="user-a", title="   ", storage=storage)

    def test_rejects_too_many_images(self, db, storage):
        with pytest.raises(ValueError):
            create_post(db, user_id="user-a", title="x", images=[PreparedImage(b"i")] * 7, storage=storage)
        assert storage.list_all(BUCKET) == []

    def test_upload_failure_discards_and_persists_nothing(self, db, storage):
        real_upload = storage.upload
        calls = []

        def flaky_upload(namespace, path, content, content_type=ContentType.IMAGE_JPEG):
            calls.append(path)
            if len(calls) == 2:
                raise StorageUnavailable("disk full", namespace)
            return real_upload(namespace, path, content, content_type)

        with patch.object(storage, "upload", side_effect=flaky_upload):
            with pytest.raises(StorageUnavailable):
                create_post(
                    db,
                    user_id="user-a",
                    title="x",
                    images=[PreparedImage(b"1"), PreparedImage(b"2")],
                    storage=storage,
                )

        assert storage.list_all(BUCKET) == []
        assert db.query(Post).count() == 0

    def test_insert_failure_discards_uploads(self, db, storage):
        error = OperationalError("INSERT INTO posts", {}, Exception("connection lost"))

        with patch.object(db, "commit", side_effect=error):
            with pytest.raises(StoreUnavailable):
                create_post(db, user_id="user-a", title="x", images=[PreparedImage(b"1")], storage=storage)

        assert storage.list_all(BUCKET) == []


class TestListPosts:
    """Tests for list_posts()."""

    def test_hides_expired_before_prune(self, db, make_post):
        alive = make_post(created_at=T0 - timedelta(days=1))
        make_post(created_at=T0 - timedelta(days=15))
        make_post(created_at=T0 - timedelta(days=15), expires_at=None)
        make_post(created_at=T0 - timedelta(hours=1), expires_at=T0 - timedelta(minutes=1))

        posts = list_posts(db, now=T0)

        assert [p.id for p in posts] == [alive.id]

    def test_newest_first_and_filters(self, db, make_post):
        older = make_post(created_at=T0 - timedelta(days=2), category="gives-vaek")
        newer = make_post(created_at=T0 - timedelta(days=1), category="gives-vaek")
        make_post(created_at=T0 - timedelta(days=1), category="soeges", user_id="user-b")

        assert [p.id for p in list_posts(db, category="gives-vaek", now=T0)] == [newer.id, older.id]
        assert len(list_posts(db, user_id="user-b", now=T0)) == 1

    def test_boundary_excluded_at_expiry(self, db, make_post):
        make_post(created_at=T0 - timedelta(days=14))
        assert list_posts(db, now=T0) == []
        assert len(list_posts(db, now=T0 - timedelta(seconds=1))) == 1


class TestImageUrls:
    """Tests for image_urls_for()."""

    def test_owned_paths_resolved(self, db, make_post, storage):
        post = make_post(paths=["user-a/1.jpg"])
        assert image_urls_for(post, storage) == [f"https://cdn.test/{BUCKET}/user-a/1.jpg"]

    def test_legacy_url_fields(self, db, make_post, storage):
        post = make_post(image_urls=["https://old.example/1.jpg", ""], image_url="https://old.example/1.jpg")
        assert image_urls_for(post, storage) == ["https://old.example/1.jpg"]

        post.image_urls = None
        assert image_urls_for(post, storage) == ["https://old.example/1.jpg"]
