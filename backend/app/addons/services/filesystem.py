from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger("addon_manager.filesystem")


def _directory_size(root: Path) -> int:
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    total = 0
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            # lstat: symlinks count for their own size, targets are not followed
            total += os.lstat(os.path.join(dirpath, filename)).st_size
    return total


def _safe_unlink(path: Path) -> None:
    """Remove a symlink or file."""
    if path.is_symlink() or path.is_file():
        path.unlink()


def _safe_rmtree(path: Path) -> None:
    """Remove a real directory tree (never follows a symlinked root)."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=False)


class FilesystemGateway:
    """
    Async access to the local filesystem.

    Every call runs the blocking work in a worker thread so the event loop
    keeps serving other addons while a large directory is being walked.
    """

    def __init__(self, trash_dir: Optional[Path] = None):
        self.trash_dir = trash_dir

    async def read_file(self, path: Path) -> str:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(path.exists)

    async def get_directory_size(self, path: Path) -> int:
        return await asyncio.to_thread(_directory_size, path)

    async def delete_file(self, path: Path, *, recursive: bool = False, use_trash: bool = False) -> None:
        await asyncio.to_thread(self._delete, path, recursive, use_trash)

    def _delete(self, path: Path, recursive: bool, use_trash: bool) -> None:
        if not path.exists() and not path.is_symlink():
            raise FileNotFoundError(f"Cannot delete, path does not exist: {path}")

        is_dir = path.is_dir() and not path.is_symlink()
        if is_dir and not recursive:
            raise IsADirectoryError(f"Refusing to delete directory without recursive=True: {path}")

        if use_trash and self.trash_dir is not None:
            self.trash_dir.mkdir(parents=True, exist_ok=True)
            target = self.trash_dir / f"{path.name}-{int(time.time() * 1000)}"
            shutil.move(str(path), str(target))
            logger.info("Moved %s to trash: %s", path, target)
            return

        if use_trash:
            logger.debug("No trash directory configured; deleting %s permanently", path)

        if is_dir:
            _safe_rmtree(path)
        else:
            _safe_unlink(path)
        logger.info("Deleted %s", path)
