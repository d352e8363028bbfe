"""
Unit tests for storage path planning.
"""

import pytest

from photovault.utils.storage_paths import StoragePaths, plan_storage_paths


class TestPlanStoragePaths:
    """Test cases for plan_storage_paths."""

    def test_paths(self):
        paths = plan_storage_paths("user-123", "abc.webp")

        assert paths == StoragePaths("user-123/previews/abc.webp", "user-123/full/abc.webp")

    def test_deterministic(self):
        assert plan_storage_paths("u", "f.webp") == plan_storage_paths("u", "f.webp")

    def test_paths_are_distinct_and_owner_prefixed(self):
        paths = plan_storage_paths("user-123", "abc.webp")

        assert paths.preview_path != paths.full_path
        assert all(path.split("/")[0] == "user-123" for path in paths)

    def test_different_owners_never_collide(self):
        first = plan_storage_paths("alice", "same.webp")
        second = plan_storage_paths("bob", "same.webp")

        assert set(first).isdisjoint(second)

    @pytest.mark.parametrize(
        ("owner_id", "filename"),
        [("", "a.webp"), ("u", ""), ("a/b", "a.webp"), ("..", "a.webp"), ("u", "../a.webp"), ("u", "a\\b.webp")],
    )
    def test_invalid_segments(self, owner_id, filename):
        with pytest.raises(ValueError):
            plan_storage_paths(owner_id, filename)
