"""
Collections of persistent objects stored in the database.

Each collection owns a one-byte key prefix in the shared key-value store and
stores JSON documents keyed by name. The CollectionFactory creates each
collection on first use and hands out the same instance afterwards.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from ..database.storage import Storage

__all__ = ["Collection", "CollectionFactory"]

logger = logging.getLogger(__name__)


class Collection:
    """JSON documents under a key prefix."""

    def __init__(self, db: Storage, prefix: bytes, kind: str):
        self._db = db
        self.prefix = prefix
        self.kind = kind

    def _key(self, name: str) -> bytes:
        if not name:
            raise ValueError(f"{self.kind} name must not be empty")
        return self.prefix + name.encode("utf-8")

    def add(self, name: str, document: Dict[str, Any]) -> None:
        """
        Store a new document.

        Raises:
            ValueError: If a document with this name already exists
        """
        key = self._key(name)
        try:
            self._db.get(key)
        except KeyError:
            pass
        else:
            raise ValueError(f"{self.kind} with name {name} already exists")
        self._db.put(key, json.dumps(document, sort_keys=True).encode("utf-8"))

    def update(self, name: str, document: Dict[str, Any]) -> None:
        self._db.put(self._key(name), json.dumps(document, sort_keys=True).encode("utf-8"))

    def by_name(self, name: str) -> Dict[str, Any]:
        """
        Raises:
            KeyError: If no document with this name exists
        """
        try:
            raw = self._db.get(self._key(name))
        except KeyError:
            raise KeyError(f"{self.kind} with name {name} not found") from None
        return json.loads(raw)

    def remove(self, name: str) -> None:
        self.by_name(name)
        self._db.delete(self._key(name))

    def names(self) -> List[str]:
        return [key[len(self.prefix):].decode("utf-8") for key in self._db.keys_by_prefix(self.prefix)]

    def __len__(self) -> int:
        return len(self._db.keys_by_prefix(self.prefix))


class CollectionFactory:
    """
    Lazily builds one collection of each kind over a single database.

    The factory does not own the database; the execution context closes it.
    """

    PREFIXES = {
        "local_repos": (b"L", "local repo"),
        "remote_repos": (b"R", "mirror"),
        "snapshots": (b"S", "snapshot"),
        "packages": (b"P", "package"),
        "published_repos": (b"U", "published repo"),
    }

    def __init__(self, db: Storage):
        self.db = db
        self._collections: Dict[str, Collection] = {}

    def _get(self, name: str) -> Collection:
        collection: Optional[Collection] = self._collections.get(name)
        if collection is None:
            prefix, kind = self.PREFIXES[name]
            collection = Collection(self.db, prefix, kind)
            self._collections[name] = collection
            logger.debug(f"Created {name} collection")
        return collection

    def local_repos(self) -> Collection:
        return self._get("local_repos")

    def remote_repos(self) -> Collection:
        return self._get("remote_repos")

    def snapshots(self) -> Collection:
        return self._get("snapshots")

    def packages(self) -> Collection:
        return self._get("packages")

    def published_repos(self) -> Collection:
        return self._get("published_repos")

    def stats(self) -> Dict[str, int]:
        """Document count per collection, in declaration order."""
        return {name: len(self._get(name)) for name in self.PREFIXES}
