# tests/unit/test_lifecycle/test_prune_service.py
"""Unit tests for the expired-post prune job."""

from datetime import datetime, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from nabolag.errors import StorageUnavailable
from nabolag.models import Post
from nabolag.services.lifecycle.prune_service import (
    count_expired,
    fetch_expired_batch,
    prune_expired_posts,
)
from nabolag.services.posts_service import list_posts
from nabolag.storage.local_provider import LocalStorageProvider

BUCKET = "opslagsbilleder"
T0 = datetime(2026, 3, 1, 12, 0, 0)


class FlakyStorage(LocalStorageProvider):
    """Local provider whose remove fails for any chunk touching a marked path."""

    def __init__(self, base_path, fail_prefix="bad/"):
        super().__init__(base_path=base_path)
        self.fail_prefix = fail_prefix
        self.remove_calls = []

    def remove(self, namespace, paths):
        self.remove_calls.append(list(paths))
        if self.fail_prefix and any(p.startswith(self.fail_prefix) for p in paths):
            raise StorageUnavailable("simulated outage", namespace)
        return super().remove(namespace, paths)


class PartialStorage(LocalStorageProvider):
    """Local provider that never confirms one particular path."""

    def __init__(self, base_path, stuck_path):
        super().__init__(base_path=base_path)
        self.stuck_path = stuck_path

    def remove(self, namespace, paths):
        super().remove(namespace, [p for p in paths if p != self.stuck_path])
        return [p for p in paths if p != self.stuck_path]


def _ids(db):
    return {row.id for row in db.query(Post).all()}


class TestFetchExpiredBatch:
    """Tests for candidate selection."""

    def test_explicit_and_implicit_candidates(self, db, make_post):
        explicit = make_post(created_at=T0 - timedelta(days=2), expires_at=T0 - timedelta(days=1))
        implicit = make_post(created_at=T0 - timedelta(days=15), expires_at=None)
        make_post(created_at=T0 - timedelta(days=13), expires_at=None)
        make_post(created_at=T0)

        batch = fetch_expired_batch(db, T0, limit=10)

        assert {item.id for item in batch.items} == {explicit.id, implicit.id}
        assert batch.full is False

    def test_full_when_either_query_hits_limit(self, db, make_post):
        make_post(created_at=T0 - timedelta(days=20), expires_at=None)
        make_post(created_at=T0 - timedelta(days=21), expires_at=None)

        batch = fetch_expired_batch(db, T0, limit=2)

        assert batch.full is True

    def test_boundary_inclusive_at_expiry(self, db, make_post):
        post = make_post(created_at=T0 - timedelta(days=14))
        assert [i.id for i in fetch_expired_batch(db, T0).items] == [post.id]
        assert fetch_expired_batch(db, T0 - timedelta(seconds=1)).items == []


class TestPruneExpiredPosts:
    """Tests for prune_expired_posts()."""

    def test_scenario_one_expired_one_alive(self, db, make_post, storage):
        """A has no explicit expiry (TTL ends T+14d), B created at T+10d; prune at T+15d."""
        a = make_post(created_at=T0, expires_at=None, paths=["user-a/p1.jpg", "user-a/p2.jpg"])
        b = make_post(created_at=T0 + timedelta(days=10), paths=["user-a/p3.jpg"])
        now = T0 + timedelta(days=15)

        result = prune_expired_posts(db, storage=storage, now=now)

        assert result.success is True
        assert result.deleted_count == 1
        assert result.removed_object_count == 2
        assert result.ids == [str(a.id)]
        assert _ids(db) == {b.id}
        assert storage.list_all(BUCKET) == ["user-a/p3.jpg"]
        assert [p.id for p in list_posts(db, now=now)] == [b.id]

    def test_second_run_is_noop(self, db, make_post, storage):
        make_post(created_at=T0 - timedelta(days=30), paths=["x/1.jpg"])

        first = prune_expired_posts(db, storage=storage, now=T0)
        second = prune_expired_posts(db, storage=storage, now=T0)

        assert first.deleted_count == 1
        assert second.deleted_count == 0
        assert second.removed_object_count == 0
        assert second.iterations == 0
        assert second.success is True

    def test_nothing_to_prune(self, db, make_post, storage):
        make_post(created_at=T0)

        result = prune_expired_posts(db, storage=storage, now=T0)

        assert result.success is True
        assert result.deleted_count == 0
        assert result.ids == []

    def test_post_without_images(self, db, make_post, storage):
        post = make_post(created_at=T0 - timedelta(days=20))

        result = prune_expired_posts(db, storage=storage, now=T0)

        assert result.ids == [str(post.id)]
        assert result.removed_object_count == 0

    def test_already_missing_objects_count_as_removed(self, db, make_post, storage):
        post = make_post(created_at=T0 - timedelta(days=20), paths=["gone/1.jpg"], upload=False)

        result = prune_expired_posts(db, storage=storage, now=T0)

        assert result.ids == [str(post.id)]
        assert _ids(db) == set()

    def test_shared_object_removed_once(self, db, make_post, storage):
        make_post(created_at=T0 - timedelta(days=20), paths=["shared/1.jpg"])
        make_post(created_at=T0 - timedelta(days=21), paths=["shared/1.jpg"])

        result = prune_expired_posts(db, storage=storage, now=T0)

        assert result.deleted_count == 2
        assert result.removed_object_count == 1
        assert result.removed_paths == ["shared/1.jpg"]

    def test_failed_chunk_keeps_its_rows(self, db, make_post, tmp_path):
        flaky = FlakyStorage(str(tmp_path / "flaky"))
        ok = make_post(created_at=T0 - timedelta(days=20), upload=False, paths=["good/1.jpg"])
        stuck = make_post(created_at=T0 - timedelta(days=19), upload=False, paths=["bad/1.jpg"])
        for path in ("good/1.jpg", "bad/1.jpg"):
            flaky.upload(BUCKET, path, b"img")

        first = prune_expired_posts(db, storage=flaky, now=T0, storage_chunk=1)

        assert first.success is True
        assert first.ids == [str(ok.id)]
        assert first.skipped_ids == [str(stuck.id)]
        assert first.errors
        assert _ids(db) == {stuck.id}
        assert flaky.exists(BUCKET, "bad/1.jpg")

        flaky.fail_prefix = None
        second = prune_expired_posts(db, storage=flaky, now=T0, storage_chunk=1)

        assert second.ids == [str(stuck.id)]
        assert second.removed_paths == ["bad/1.jpg"]
        assert _ids(db) == set()

    def test_chunking_respects_chunk_size(self, db, make_post, tmp_path):
        flaky = FlakyStorage(str(tmp_path / "chunks"), fail_prefix=None)
        make_post(created_at=T0 - timedelta(days=20), upload=False, paths=[f"u/{i}.jpg" for i in range(5)])

        result = prune_expired_posts(db, storage=flaky, now=T0, storage_chunk=2)

        assert result.deleted_count == 1
        assert [len(c) for c in flaky.remove_calls] == [2, 2, 1]

    def test_unconfirmed_object_holds_back_row(self, db, make_post, tmp_path):
        partial = PartialStorage(str(tmp_path / "partial"), stuck_path="u/2.jpg")
        post = make_post(created_at=T0 - timedelta(days=20), upload=False, paths=["u/1.jpg", "u/2.jpg"])

        result = prune_expired_posts(db, storage=partial, now=T0)

        assert result.deleted_count == 0
        assert result.removed_object_count == 1
        assert result.skipped_ids == [str(post.id)]
        assert _ids(db) == {post.id}

    def test_path_outside_namespace_holds_back_only_its_row(self, db, make_post, storage):
        escaping = make_post(created_at=T0 - timedelta(days=21), upload=False, paths=["../escape.jpg"])
        healthy = make_post(created_at=T0 - timedelta(days=20), paths=["u/ok.jpg"])

        result = prune_expired_posts(db, storage=storage, now=T0)

        assert result.success is True
        assert result.ids == [str(healthy.id)]
        assert result.skipped_ids == [str(escaping.id)]
        assert _ids(db) == {escaping.id}
        assert storage.list_all(BUCKET) == []

    def test_dry_run_mutates_nothing(self, db, make_post, storage):
        a = make_post(created_at=T0 - timedelta(days=20), paths=["d/1.jpg"])
        b = make_post(created_at=T0 - timedelta(days=16), expires_at=None, paths=["d/2.jpg", "d/3.jpg"])
        alive = make_post(created_at=T0)

        preview = prune_expired_posts(db, dry_run=True, now=T0)

        assert preview.dry_run is True
        assert preview.success is True
        assert set(preview.ids) == {str(a.id), str(b.id)}
        assert preview.deleted_count == 2
        assert preview.removed_object_count == 3
        assert _ids(db) == {a.id, b.id, alive.id}
        assert storage.list_all(BUCKET) == ["d/1.jpg", "d/2.jpg", "d/3.jpg"]

        real = prune_expired_posts(db, storage=storage, now=T0)

        assert set(real.ids) == set(preview.ids)
        assert _ids(db) == {alive.id}

    def test_loops_while_batches_are_full(self, db, make_post, storage):
        for i in range(5):
            make_post(created_at=T0 - timedelta(days=20 + i))

        result = prune_expired_posts(db, storage=storage, now=T0, rows_limit=2)

        assert result.deleted_count == 5
        assert result.iterations == 3

    def test_loop_cap_leaves_rest_for_next_run(self, db, make_post, storage):
        for i in range(5):
            make_post(created_at=T0 - timedelta(days=20 + i))

        first = prune_expired_posts(db, storage=storage, now=T0, rows_limit=2, max_loops=2)
        second = prune_expired_posts(db, storage=storage, now=T0, rows_limit=2, max_loops=2)

        assert first.deleted_count == 4
        assert second.deleted_count == 1
        assert _ids(db) == set()

    def test_row_delete_error_aborts_run(self, db, make_post, storage):
        post = make_post(created_at=T0 - timedelta(days=20), paths=["e/1.jpg"])
        error = OperationalError("DELETE FROM posts", {}, Exception("connection lost"))

        with patch.object(db, "commit", side_effect=error):
            result = prune_expired_posts(db, storage=storage, now=T0)

        assert result.success is False
        assert result.deleted_count == 0
        assert any("delete rows failed" in e for e in result.errors)
        assert _ids(db) == {post.id}

    def test_fetch_error_aborts_run(self, db, storage):
        error = OperationalError("SELECT", {}, Exception("connection lost"))

        with patch(
            "nabolag.services.lifecycle.prune_service.fetch_expired_batch",
            side_effect=error,
        ):
            result = prune_expired_posts(db, storage=storage, now=T0)

        assert result.success is False
        assert result.iterations == 0


class TestCountExpired:
    """Tests for count_expired()."""

    def test_counts_by_kind(self, db, make_post):
        make_post(created_at=T0 - timedelta(days=20))
        make_post(created_at=T0 - timedelta(days=20), expires_at=None)
        make_post(created_at=T0 - timedelta(days=21), expires_at=None)
        make_post(created_at=T0)

        assert count_expired(db, T0) == {"explicit": 1, "implicit": 2, "total": 3}
