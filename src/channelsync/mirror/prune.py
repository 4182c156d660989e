"""
Mark-and-sweep pruning of the cache tree.

The walk is post-order so directories emptied by the sweep are removed in the
same pass. It is blocking work and runs on a dedicated worker thread, so it
never stalls network tasks scheduled on the event loop.
"""

import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet

from channelsync.constants import PRUNE_THREAD_NAME
from channelsync.exceptions import FileSystemError
from channelsync.log_utils import logger


@dataclass
class PruneSummary:
    """Counts of entries removed by a prune."""

    files: int = 0
    symlinks: int = 0
    directories: int = 0

    @property
    def total(self) -> int:
        return self.files + self.symlinks + self.directories


def _remove(path: str, remover) -> None:
    try:
        remover(path)
    except OSError as e:
        raise FileSystemError(
            "Failed to prune cache entry", path=path, details=str(e)
        ) from e


def _prune_directory(
    directory: str, preserve: AbstractSet[Path], summary: PruneSummary
) -> None:
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        raise FileSystemError(
            "Failed to list cache directory", path=directory, details=str(e)
        ) from e

    for entry in entries:
        if entry.is_symlink():
            # The mirror never creates links; any found are foreign or stale
            _remove(entry.path, os.unlink)
            summary.symlinks += 1
            logger.debug(f"Pruned symlink {entry.path}")
        elif entry.is_dir(follow_symlinks=False):
            _prune_directory(entry.path, preserve, summary)
        elif Path(entry.path) not in preserve:
            _remove(entry.path, os.unlink)
            summary.files += 1
            logger.debug(f"Pruned file {entry.path}")

    try:
        with os.scandir(directory) as it:
            empty = next(it, None) is None
    except OSError as e:
        raise FileSystemError(
            "Failed to list cache directory", path=directory, details=str(e)
        ) from e
    if empty:
        _remove(directory, os.rmdir)
        summary.directories += 1
        logger.debug(f"Pruned empty directory {directory}")


def prune_tree(root: Path, preserve: AbstractSet[Path]) -> PruneSummary:
    """
    Delete everything under `root` that is not in `preserve`.

    Regular files are deleted unless their path is preserved, symlinks are
    always deleted, and directories are deleted once they are left empty. A
    missing root is not an error.

    Parameters:
        root (Path): The cache root.
        preserve (AbstractSet[Path]): Absolute paths (joined onto `root`) to keep.

    Returns:
        PruneSummary: Counts of the removed entries.

    Raises:
        FileSystemError: On the first deletion or listing failure; the prune stops there.
    """
    summary = PruneSummary()
    if not root.is_dir():
        logger.debug(f"Cache root {root} does not exist; nothing to prune")
        return summary

    _prune_directory(str(root), preserve, summary)
    return summary


async def prune_cache(root: Path, preserve: AbstractSet[Path]) -> PruneSummary:
    """
    Run `prune_tree` on a dedicated worker thread and wait for it to finish.

    Returns:
        PruneSummary: Counts of the removed entries.
    """
    loop = asyncio.get_running_loop()
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix=PRUNE_THREAD_NAME) as pool:
        summary = await loop.run_in_executor(pool, prune_tree, root, preserve)

    logger.info(
        f"Pruned cache: {summary.files} files, {summary.symlinks} symlinks, "
        f"{summary.directories} directories removed"
    )
    return summary
