"""
Bounded-concurrency fetch, verify and persist of download descriptors.

A fixed pool of worker coroutines drains a shared queue of descriptors. The
first error is kept, unclaimed descriptors are abandoned, workers already
busy finish their current item and the error is raised once every worker has
stopped. There is no partial-success result: the batch succeeds or raises.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from channelsync.constants import BYTES_PER_MEGABYTE, FILE_SIZE_MB_LOGGING_THRESHOLD
from channelsync.exceptions import BadChecksumError, FileSystemError
from channelsync.log_utils import logger

from .desired import DownloadDescriptor
from .digest import Sha256
from .transport import Downloader


@dataclass
class RefreshSummary:
    """Outcome of a successful download batch."""

    downloaded: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.downloaded + self.skipped


async def _is_satisfied(destination: Path, checksum: Optional[Sha256]) -> bool:
    """
    Decide whether `destination` already holds the wanted content.

    A file without a declared checksum is trusted as soon as it exists; a file
    with one must hash to it.
    """
    try:
        if checksum is None:
            return await aiofiles.os.path.exists(destination)
        actual = await Sha256.of_file(destination)
    except OSError as e:
        raise FileSystemError(
            "Failed to verify cached file", path=str(destination), details=str(e)
        ) from e

    if actual is None:
        return False
    if actual != checksum:
        logger.warning(f"Checksum mismatch for {destination.name}; fetching again")
        return False
    return True


async def _write(destination: Path, body: bytes) -> None:
    # Whole-file, non-atomic write; a torn file fails verification on the next run
    try:
        await aiofiles.os.makedirs(destination.parent, exist_ok=True)
        async with aiofiles.open(destination, "wb") as f:
            await f.write(body)
    except OSError as e:
        raise FileSystemError(
            "Failed to write cached file", path=str(destination), details=str(e)
        ) from e


async def fetch_one(
    root: Path, descriptor: DownloadDescriptor, downloader: Downloader
) -> bool:
    """
    Bring a single descriptor up to date.

    Returns:
        bool: True if the file was downloaded, False if it was already satisfied.

    Raises:
        UnsupportedSchemeError, NetworkError, HTTPError: From the downloader.
        BadChecksumError: If the fetched bytes do not match the declared checksum.
        FileSystemError: On read or write failures.
    """
    destination = root / descriptor.path
    if await _is_satisfied(destination, descriptor.checksum):
        logger.info(f"Skipped: {descriptor.path} (already present & verified)")
        return False

    body = await downloader.fetch(descriptor.url)

    if descriptor.checksum is not None:
        actual = Sha256.of(body)
        if actual != descriptor.checksum:
            raise BadChecksumError(
                descriptor.url, expected=descriptor.checksum.hex, actual=actual.hex
            )

    await _write(destination, body)

    size_mb = len(body) / BYTES_PER_MEGABYTE
    if size_mb >= FILE_SIZE_MB_LOGGING_THRESHOLD:
        logger.info(f"Downloaded: {descriptor.path} ({size_mb:.1f} MB)")
    else:
        logger.info(f"Downloaded: {descriptor.path} ({len(body)} bytes)")
    return True


async def refresh(
    root: Path,
    descriptors: Iterable[DownloadDescriptor],
    downloader: Downloader,
    jobs: int,
) -> RefreshSummary:
    """
    Download every descriptor that is not already satisfied on disk.

    At most `jobs` descriptors are in flight at once; completion order is
    unspecified. The first failure stops new work from starting and is raised
    after in-flight work has drained.

    Parameters:
        root (Path): The cache root the descriptor paths are relative to.
        descriptors (Iterable[DownloadDescriptor]): The work to do.
        downloader (Downloader): The fetch collaborator.
        jobs (int): Concurrency budget; must be positive.

    Returns:
        RefreshSummary: How many files were downloaded and skipped.

    Raises:
        ValueError: If `jobs` is not positive.
        ChannelSyncError: The first error raised by any descriptor.
    """
    if jobs < 1:
        raise ValueError(f"jobs must be >= 1, got {jobs}")

    queue: "asyncio.Queue[DownloadDescriptor]" = asyncio.Queue()
    for descriptor in descriptors:
        queue.put_nowait(descriptor)

    summary = RefreshSummary()
    errors: List[BaseException] = []

    async def worker() -> None:
        while not errors:
            try:
                descriptor = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                downloaded = await fetch_one(root, descriptor, downloader)
            except Exception as e:
                if not errors:
                    logger.error(f"Download failed for {descriptor.url}: {e}")
                errors.append(e)
                return
            if errors:
                # Another worker already failed; this result is discarded
                return
            if downloaded:
                summary.downloaded += 1
            else:
                summary.skipped += 1

    nworkers = min(jobs, queue.qsize())
    logger.info(f"Refreshing {queue.qsize()} artefacts with {jobs} jobs")
    await asyncio.gather(*(worker() for _ in range(nworkers)))

    if errors:
        if queue.qsize():
            logger.debug(f"Abandoned {queue.qsize()} queued artefacts")
        raise errors[0]

    return summary
