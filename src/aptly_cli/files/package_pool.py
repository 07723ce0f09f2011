"""
Content-addressed package pool on the local filesystem.

Files live under ``<root>/pool/<md5[0:2]>/<md5[2:4]>/<filename>``.
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import List, Union

from ..path_safety import safe_filename, safe_relpath

__all__ = ["PackagePool"]

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PackagePool:
    """Handle over the pool directory. Construction touches nothing on disk."""

    def __init__(self, root: PathLike):
        self.root_path = Path(root) / "pool"

    def relative_path(self, filename: str, hash_md5: str) -> str:
        """
        Pool-relative location of a package file.

        Raises:
            ValueError: If the hash is too short or the filename is unsafe
        """
        filename = safe_filename(filename)
        if len(hash_md5) < 4:
            raise ValueError(f"unable to compute pool location for {filename}: md5 is missing")
        return f"{hash_md5[0:2]}/{hash_md5[2:4]}/{filename}"

    def path(self, filename: str, hash_md5: str) -> Path:
        return self.root_path / self.relative_path(filename, hash_md5)

    def import_file(self, src: PathLike, hash_md5: str) -> str:
        """
        Copy ``src`` into the pool (hardlink when possible).

        Returns:
            Pool-relative path of the imported file
        """
        src = Path(src)
        relative = self.relative_path(src.name, hash_md5)
        target = self.root_path / relative
        if target.exists():
            return relative
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.link(src, target)
        except OSError:
            shutil.copy2(src, target)
        logger.debug(f"Imported {src} into pool as {relative}")
        return relative

    def filepath_list(self) -> List[str]:
        """All pool-relative file paths, sorted."""
        if not self.root_path.is_dir():
            return []
        return sorted(
            p.relative_to(self.root_path).as_posix()
            for p in self.root_path.rglob("*")
            if p.is_file()
        )

    def remove(self, relative: str) -> int:
        """
        Remove a pool file.

        Returns:
            Size in bytes of the removed file

        Raises:
            ValueError: If ``relative`` would leave the pool directory
        """
        target = self.root_path / safe_relpath(relative)
        size = target.stat().st_size
        target.unlink()
        return size
