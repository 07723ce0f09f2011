"""Embedded database used for all persistent collections."""
from .storage import Storage, open_db

__all__ = ["Storage", "open_db"]
