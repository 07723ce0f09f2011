"""Debian repository objects persisted in the database."""
from .collections import Collection, CollectionFactory

__all__ = ["Collection", "CollectionFactory"]
