"""
Published repository tree on the local filesystem.

Everything published lands under ``<root>/public``; paths given to this
class are relative to that directory.
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path, PurePosixPath
from typing import List, Union

from ..path_safety import safe_relpath
from .package_pool import PackagePool

__all__ = ["PublishedStorage"]

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PublishedStorage:
    """Handle over the public directory. Construction touches nothing on disk."""

    def __init__(self, root: PathLike):
        self.root_path = Path(root) / "public"

    def public_path(self) -> Path:
        return self.root_path

    def _resolve(self, path: str) -> Path:
        return self.root_path / safe_relpath(path)

    def mkdir(self, path: str) -> Path:
        target = self._resolve(path)
        target.mkdir(parents=True, exist_ok=True)
        return target

    def put_file(self, path: str, source: PathLike) -> Path:
        """Copy ``source`` to ``path`` inside the public tree, creating parent dirs."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        return target

    def remove(self, path: str) -> None:
        """Remove a single file; a missing file is not an error."""
        self._resolve(path).unlink(missing_ok=True)

    def remove_dirs(self, path: str) -> None:
        """Recursively remove a directory; a missing directory is not an error."""
        target = self._resolve(path)
        if target.is_dir():
            logger.debug(f"Removing published directory {target}")
            shutil.rmtree(target)

    def link_from_pool(self, prefix: str, component: str, pool: PackagePool,
                       pool_relative: str, source_name: str) -> str:
        """
        Hardlink a pool file into ``<prefix>/pool/<component>/<letter>/<source>/``.

        Falls back to copying when hardlinks are not possible (cross-device).

        Returns:
            Path of the published file relative to the public root

        Raises:
            ValueError: If ``pool_relative`` would leave the pool directory
        """
        source = pool.root_path / safe_relpath(pool_relative)
        letter = source_name[:4] if source_name.startswith("lib") else source_name[:1]
        basename = PurePosixPath(pool_relative).name
        relative = f"{prefix}/pool/{component}/{letter}/{source_name}/{basename}"
        target = self._resolve(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists():
            if target.stat().st_size == source.stat().st_size:
                return relative
            target.unlink()
        try:
            os.link(source, target)
        except OSError:
            shutil.copy2(source, target)
        return relative

    def filelist(self, prefix: str) -> List[str]:
        """All files under ``prefix``, relative to it, sorted."""
        base = self._resolve(prefix)
        if not base.is_dir():
            return []
        return sorted(p.relative_to(base).as_posix() for p in base.rglob("*") if p.is_file())

    def rename_file(self, old_name: str, new_name: str) -> None:
        os.replace(self._resolve(old_name), self._resolve(new_name))
