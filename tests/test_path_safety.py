"""
Tests for path safety validation.

Tests the shared path_safety module and integration with components
that use it (package pool, published storage).
"""
from __future__ import annotations

import pytest

from aptly_cli.files import PackagePool, PublishedStorage
from aptly_cli.path_safety import safe_filename, safe_relpath


class TestSafeRelpath:
    """Test safe_relpath function directly."""

    def test_safe_paths_allowed(self):
        """Test that safe relative paths are allowed."""
        assert safe_relpath("Release") == "Release"
        assert safe_relpath("dists/stable/Release") == "dists/stable/Release"
        assert safe_relpath("pool/main/h/hello/hello_1.0_amd64.deb") == "pool/main/h/hello/hello_1.0_amd64.deb"

    def test_normalized(self):
        """Test that redundant separators and dot components are dropped."""
        assert safe_relpath("dists//stable/./Release") == "dists/stable/Release"

    def test_absolute_paths_rejected(self):
        """Test that absolute paths are rejected."""
        with pytest.raises(ValueError, match="unsafe path: /etc/passwd"):
            safe_relpath("/etc/passwd")

    def test_parent_directory_traversal_rejected(self):
        """Test that parent directory traversal is rejected."""
        with pytest.raises(ValueError, match="unsafe path: ../evil.txt"):
            safe_relpath("../evil.txt")

        with pytest.raises(ValueError, match="unsafe path: dists/../../evil.txt"):
            safe_relpath("dists/../../evil.txt")

    def test_root_itself_rejected(self):
        """Test that paths addressing the root are rejected."""
        for path in ("", ".", "./"):
            with pytest.raises(ValueError, match="unsafe path"):
                safe_relpath(path)

    def test_backslash_paths_rejected(self):
        """Test that paths containing backslashes are rejected."""
        for path in ("a\\b.deb", "..\\..\\etc\\passwd", "dists/stable\\Release"):
            with pytest.raises(ValueError, match="unsafe path"):
                safe_relpath(path)


class TestSafeFilename:
    """Test bare filename validation."""

    def test_plain_names_allowed(self):
        assert safe_filename("hello_1.0_amd64.deb") == "hello_1.0_amd64.deb"

    @pytest.mark.parametrize("name", ["", ".", "..", "dir/file.deb", "a\\b.deb"])
    def test_unsafe_names_rejected(self, name):
        with pytest.raises(ValueError, match="unsafe filename"):
            safe_filename(name)


class TestStoragePathSafety:
    """Test that storage classes validate paths before touching disk."""

    def test_pool_rejects_traversal(self, tmp_path):
        pool = PackagePool(tmp_path)
        with pytest.raises(ValueError):
            pool.path("../../etc/passwd", "0123456789abcdef")

    def test_published_rejects_traversal(self, tmp_path):
        published = PublishedStorage(tmp_path)
        with pytest.raises(ValueError):
            published.put_file("../escape", tmp_path / "whatever")
        assert not (tmp_path / "escape").exists()

    def test_pool_remove_rejects_traversal(self, tmp_path):
        """Test that removing a pool file cannot reach outside the pool."""
        victim = tmp_path / "victim.txt"
        victim.write_text("keep me")
        pool = PackagePool(tmp_path / "root")

        with pytest.raises(ValueError, match="unsafe path"):
            pool.remove("../../victim.txt")
        with pytest.raises(ValueError, match="unsafe path"):
            pool.remove(str(victim))
        assert victim.read_text() == "keep me"

    def test_link_from_pool_rejects_traversal(self, tmp_path):
        """Test that publishing cannot link a file from outside the pool."""
        secret = tmp_path / "secret.txt"
        secret.write_text("private")
        pool = PackagePool(tmp_path / "root")
        published = PublishedStorage(tmp_path / "root")

        with pytest.raises(ValueError, match="unsafe path"):
            published.link_from_pool("debian", "main", pool, "../../secret.txt", "hello")
        assert not published.public_path().exists()
