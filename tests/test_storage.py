"""
Tests for the key-value database and the collections built on it.
"""
from __future__ import annotations

import sqlite3

import pytest

from aptly_cli.database.storage import DB_FILENAME, open_db
from aptly_cli.deb.collections import CollectionFactory


@pytest.fixture
def db(tmp_path):
    storage = open_db(tmp_path / "db")
    yield storage
    storage.close()


class TestStorage:
    """Test basic key-value operations."""

    def test_put_get(self, db):
        """Test storing and reading a value."""
        db.put(b"key", b"value")
        assert db.get(b"key") == b"value"

    def test_put_overwrites(self, db):
        """Test that put replaces an existing value."""
        db.put(b"key", b"one")
        db.put(b"key", b"two")
        assert db.get(b"key") == b"two"

    def test_missing_key(self, db):
        """Test that a missing key raises KeyError."""
        with pytest.raises(KeyError):
            db.get(b"absent")

    def test_delete(self, db):
        """Test delete, including of a missing key."""
        db.put(b"key", b"value")
        db.delete(b"key")
        db.delete(b"key")
        with pytest.raises(KeyError):
            db.get(b"key")

    def test_prefix_scan_sorted(self, db):
        """Test that prefix scans return only matching keys in order."""
        for key in (b"Sb", b"La", b"Sa", b"Sc", b"T"):
            db.put(key, b"")
        assert db.keys_by_prefix(b"S") == [b"Sa", b"Sb", b"Sc"]
        assert db.has_prefix(b"L") is True
        assert db.has_prefix(b"R") is False

    def test_persists_across_reopen(self, tmp_path):
        """Test that data survives close and reopen."""
        path = tmp_path / "db"
        first = open_db(path)
        first.put(b"key", b"value")
        first.close()

        second = open_db(path)
        try:
            assert second.get(b"key") == b"value"
        finally:
            second.close()

    def test_close_idempotent(self, tmp_path):
        """Test that closing twice is harmless and use after close fails."""
        storage = open_db(tmp_path / "db")
        storage.close()
        storage.close()
        assert storage.closed is True
        with pytest.raises(RuntimeError, match="is closed"):
            storage.get(b"key")

    def test_second_open_fails_while_locked(self, tmp_path):
        """Test that the database cannot be opened twice at once."""
        first = open_db(tmp_path / "db")
        try:
            with pytest.raises(sqlite3.OperationalError):
                open_db(tmp_path / "db", lock_timeout=0.05)
        finally:
            first.close()

    def test_corrupt_file(self, tmp_path):
        """Test that a file that is not a database fails to open."""
        path = tmp_path / "db"
        path.mkdir()
        (path / DB_FILENAME).write_bytes(b"definitely not sqlite " * 100)
        with pytest.raises(sqlite3.DatabaseError):
            open_db(path)


class TestCollections:
    """Test document collections and the collection factory."""

    def test_collections_memoized(self, db):
        """Test that each collection is created once."""
        factory = CollectionFactory(db)
        assert factory.local_repos() is factory.local_repos()
        assert factory.snapshots() is not factory.local_repos()

    def test_add_and_lookup(self, db):
        """Test adding and fetching a document by name."""
        repos = CollectionFactory(db).local_repos()
        repos.add("main", {"comment": "primary", "defaultComponent": "main"})
        assert repos.by_name("main")["comment"] == "primary"
        assert repos.names() == ["main"]

    def test_duplicate_add_rejected(self, db):
        """Test that names are unique within a collection."""
        repos = CollectionFactory(db).local_repos()
        repos.add("main", {})
        with pytest.raises(ValueError, match="local repo with name main already exists"):
            repos.add("main", {})

    def test_same_name_in_different_collections(self, db):
        """Test that prefixes keep collections apart."""
        factory = CollectionFactory(db)
        factory.local_repos().add("stable", {"kind": "repo"})
        factory.snapshots().add("stable", {"kind": "snapshot"})
        assert factory.local_repos().by_name("stable") == {"kind": "repo"}
        assert factory.snapshots().by_name("stable") == {"kind": "snapshot"}

    def test_missing_document(self, db):
        """Test lookup and removal of an unknown name."""
        mirrors = CollectionFactory(db).remote_repos()
        with pytest.raises(KeyError, match="mirror with name debian not found"):
            mirrors.by_name("debian")
        with pytest.raises(KeyError):
            mirrors.remove("debian")

    def test_update_and_remove(self, db):
        """Test replacing and deleting a document."""
        published = CollectionFactory(db).published_repos()
        published.add("bookworm", {"architectures": ["amd64"]})
        published.update("bookworm", {"architectures": ["arm64"]})
        assert published.by_name("bookworm") == {"architectures": ["arm64"]}
        published.remove("bookworm")
        assert len(published) == 0

    def test_empty_name_rejected(self, db):
        """Test that an empty document name is invalid."""
        with pytest.raises(ValueError, match="must not be empty"):
            CollectionFactory(db).packages().add("", {})

    def test_stats(self, db):
        """Test per-collection counts."""
        factory = CollectionFactory(db)
        factory.local_repos().add("a", {})
        factory.local_repos().add("b", {})
        factory.snapshots().add("s", {})
        assert factory.stats() == {
            "local_repos": 2,
            "remote_repos": 0,
            "snapshots": 1,
            "packages": 0,
            "published_repos": 0,
        }
