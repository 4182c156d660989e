"""
Cache Engine Pipeline

This module drives a full run over a local mirror:

    BuildDesiredSet -> Prune -> Download -> Normalize -> WriteManifestsAndAliases

Any stage failure moves the run to FAILED and propagates the error. Nothing
already written is rolled back; a re-run re-derives the desired set from the
manifests and re-verifies checksums, so it converges on the same tree.
"""

from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from channelsync.constants import DEFAULT_JOBS
from channelsync.exceptions import ChannelOverlapError, FileSystemError
from channelsync.log_utils import logger

from .alias import select_aliases
from .channel import Channel
from .desired import DesiredSet, build_desired_set
from .layout import alias_path, manifest_path
from .manifest import Manifest, dump_manifest, manifest_to_dict
from .normalize import normalize_manifest
from .orchestrator import RefreshSummary, refresh
from .prune import prune_cache
from .transport import Downloader


class RunState(Enum):
    """Stages of a cache run."""

    INIT = "init"
    BUILD_DESIRED_SET = "build-desired-set"
    PRUNE = "prune"
    DOWNLOAD = "download"
    NORMALIZE = "normalize"
    WRITE_MANIFESTS = "write-manifests-and-aliases"
    DONE = "done"
    FAILED = "failed"


class ChannelCache:
    """
    A local, integrity-verified replica of one or more release channels.

    The cache owns its root directory and drives the engine stages against it
    using an injected `Downloader`, so tests can substitute a fake transport.

    Attributes:
        path: The cache root.
        state: The stage the last (or current) run reached.
        error: The error that failed the last run, if any.
    """

    def __init__(
        self, path: Path, downloader: Downloader, jobs: int = DEFAULT_JOBS
    ) -> None:
        """
        Parameters:
            path (Path): Root directory of the cache.
            downloader (Downloader): Fetch collaborator used for every artefact.
            jobs (int): Maximum number of concurrent downloads; must be positive.

        Raises:
            ValueError: If `jobs` is not positive.
        """
        if jobs < 1:
            raise ValueError(f"jobs must be >= 1, got {jobs}")
        self.path = Path(path)
        self.downloader = downloader
        self.jobs = jobs
        self.state = RunState.INIT
        self.error: Optional[BaseException] = None

    def locate(self, relative: PurePosixPath) -> Path:
        """Map a relative cache path onto the filesystem."""
        return self.path.joinpath(*relative.parts)

    def _enter(self, state: RunState) -> None:
        logger.debug(f"Cache run: {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: BaseException) -> None:
        logger.debug(f"Cache run failed during {self.state.value}: {error}")
        self.state = RunState.FAILED
        self.error = error

    def _start(self) -> None:
        self.state = RunState.INIT
        self.error = None

    async def _prune(self, desired: DesiredSet) -> None:
        self._enter(RunState.PRUNE)
        preserve = {self.locate(path) for path in desired.preserve}
        await prune_cache(self.path, preserve)

    async def _download(self, desired: DesiredSet) -> RefreshSummary:
        self._enter(RunState.DOWNLOAD)
        summary = await refresh(
            self.path, desired.descriptors(), self.downloader, self.jobs
        )
        logger.info(
            f"Refreshed cache: {summary.downloaded} downloaded, {summary.skipped} already present"
        )
        return summary

    async def synchronise(self, channel: Channel, manifest: Manifest) -> RefreshSummary:
        """
        Make the cache an exact replica of one channel manifest.

        Files not described by the manifest are pruned before missing or
        corrupt artefacts are downloaded.

        Returns:
            RefreshSummary: Download and skip counts.

        Raises:
            ChannelSyncError: The first error of any stage.
        """
        self._start()
        try:
            self._enter(RunState.BUILD_DESIRED_SET)
            desired = build_desired_set([(channel, manifest)])
            await self._prune(desired)
            summary = await self._download(desired)
        except Exception as e:
            self._fail(e)
            raise
        self._enter(RunState.DONE)
        logger.info(f"Synchronised cache for {channel}")
        return summary

    async def verify(self, channel: Channel, manifest: Manifest) -> RefreshSummary:
        """
        Re-download missing or corrupt artefacts of one channel manifest.

        Unlike `synchronise`, nothing is removed from the cache.

        Returns:
            RefreshSummary: Download and skip counts.

        Raises:
            ChannelSyncError: The first error of any stage.
        """
        self._start()
        try:
            self._enter(RunState.BUILD_DESIRED_SET)
            desired = build_desired_set([(channel, manifest)])
            summary = await self._download(desired)
        except Exception as e:
            self._fail(e)
            raise
        self._enter(RunState.DONE)
        logger.info(f"Verified cache for {channel}")
        return summary

    async def build(
        self,
        channels: Sequence[Tuple[Channel, Manifest]],
        host: Optional[str] = None,
    ) -> RefreshSummary:
        """
        Build a re-hostable mirror of several channels.

        Artefacts of all channels are merged into one desired set, the cache is
        pruned and populated, and every manifest is published at its canonical
        path. When `host` is given the published manifests point at it. The
        newest manifest of each channel name is also published at its alias path.

        Parameters:
            channels: `(channel, manifest)` pairs to mirror.
            host (Optional[str]): Base URL the mirror will be served from.

        Returns:
            RefreshSummary: Download and skip counts.

        Raises:
            ChannelOverlapError: If channels collide on a cache path.
            MixedChannelKindError: If a channel name is used by both kinds.
            ChannelSyncError: The first error of any other stage.
        """
        self._start()
        try:
            self._enter(RunState.BUILD_DESIRED_SET)
            pairs = _deduplicate(channels)
            desired = build_desired_set(pairs)
            aliases = select_aliases(pairs)
            for channel, _ in pairs:
                desired.claim(channel, manifest_path(channel), None)
            for channel, _ in aliases.values():
                desired.claim(channel, alias_path(channel), None)

            await self._prune(desired)
            summary = await self._download(desired)

            self._enter(RunState.NORMALIZE)
            if host:
                published = [
                    (channel, normalize_manifest(channel, manifest, host))
                    for channel, manifest in pairs
                ]
            else:
                published = pairs

            self._enter(RunState.WRITE_MANIFESTS)
            await self._publish(published)
        except Exception as e:
            self._fail(e)
            raise
        self._enter(RunState.DONE)
        logger.info(f"Built mirror of {len(pairs)} channels")
        return summary

    async def _publish(self, published: Iterable[Tuple[Channel, Manifest]]) -> None:
        published = list(published)
        for channel, manifest in published:
            await self._write(manifest_path(channel), dump_manifest(manifest))

        for name, (channel, manifest) in select_aliases(published).items():
            await self._write(alias_path(channel), dump_manifest(manifest))
            logger.info(f"Aliased {name} to {channel}")

    async def _write(self, relative: PurePosixPath, data: bytes) -> None:
        destination = self.locate(relative)
        try:
            await aiofiles.os.makedirs(destination.parent, exist_ok=True)
            async with aiofiles.open(destination, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise FileSystemError(
                "Failed to write manifest", path=str(destination), details=str(e)
            ) from e
        logger.info(f"Wrote {relative}")


def _deduplicate(
    channels: Iterable[Tuple[Channel, Manifest]],
) -> List[Tuple[Channel, Manifest]]:
    """
    Drop repeated identical channels; a channel given two different manifests overlaps.

    Manifests are compared with their unmodelled fields included.
    """
    seen: Dict[Channel, Manifest] = {}
    for channel, manifest in channels:
        if channel in seen:
            if manifest_to_dict(seen[channel]) != manifest_to_dict(manifest):
                raise ChannelOverlapError(
                    str(manifest_path(channel)), [str(channel), str(channel)]
                )
            continue
        seen[channel] = manifest
    return list(seen.items())
