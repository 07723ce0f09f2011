"""
Path safety utilities for the pool and published trees.

Shared validation for paths that are joined under a storage root, so a
crafted package filename or publish prefix cannot escape that root.
"""
from __future__ import annotations

from pathlib import PurePosixPath


def safe_relpath(path: str) -> str:
    """
    Validate and normalize a relative path under a storage root.

    Rules:
    - No empty strings or "." (would address the root itself)
    - No absolute paths (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes

    Args:
        path: Path relative to the storage root

    Returns:
        Normalized relative path

    Raises:
        ValueError: If path violates safety rules

    Examples:
        >>> safe_relpath("dists/stable/Release")
        'dists/stable/Release'

        >>> safe_relpath("../etc/passwd")
        ValueError: unsafe path: ../etc/passwd
    """
    rel = PurePosixPath(path)
    s = str(rel)
    if not s or s == ".":
        raise ValueError(f"unsafe path: {path}")
    if "\\" in s:
        raise ValueError(f"unsafe path: {path}")
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"unsafe path: {path}")
    return s


def safe_filename(name: str) -> str:
    """
    Validate a bare file name (no directory components).

    Raises:
        ValueError: If name is empty, a dot entry, or contains a separator
    """
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"unsafe filename: {name}")
    return name
