"""Filesystem-backed package pool and published storage."""
from .package_pool import PackagePool
from .published_storage import PublishedStorage

__all__ = ["PackagePool", "PublishedStorage"]
