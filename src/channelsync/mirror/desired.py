"""
Desired-set computation.

Merges one or many `(channel, manifest)` pairs into the set of cache paths the
mirror must contain, and the download descriptors needed to populate them.
Two channels may share a path only if they agree on its checksum.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Tuple

from channelsync.exceptions import ChannelOverlapError
from channelsync.log_utils import logger

from .channel import Channel
from .digest import Sha256
from .layout import archive_path
from .manifest import Manifest


@dataclass(frozen=True)
class DownloadDescriptor:
    """One file to fetch: its source URL, relative destination and optional checksum."""

    url: str
    path: PurePosixPath
    checksum: Optional[Sha256] = None


@dataclass
class DesiredSet:
    """The merged preserve-set and the per-channel download descriptors."""

    preserve: Dict[PurePosixPath, Optional[Sha256]] = field(default_factory=dict)
    downloads: Dict[Channel, List[DownloadDescriptor]] = field(default_factory=dict)
    _owners: Dict[PurePosixPath, Channel] = field(default_factory=dict, repr=False)

    def claim(
        self, channel: Channel, path: PurePosixPath, checksum: Optional[Sha256]
    ) -> bool:
        """
        Record that `channel` needs `path` with content `checksum`.

        Returns:
            bool: True if the path is new, False if it was already claimed with the same checksum.

        Raises:
            ChannelOverlapError: If the path is already claimed with a different checksum.
        """
        if path in self.preserve:
            if self.preserve[path] != checksum:
                owner = self._owners.get(path)
                channels = [str(channel)] if owner is None else [str(owner), str(channel)]
                raise ChannelOverlapError(str(path), channels)
            return False

        self.preserve[path] = checksum
        self._owners[path] = channel
        return True

    def descriptors(self) -> List[DownloadDescriptor]:
        """Return every download descriptor across channels as one flat list."""
        return [d for group in self.downloads.values() for d in group]

    def __len__(self) -> int:
        return len(self.preserve)


def build_desired_set(pairs: Iterable[Tuple[Channel, Manifest]]) -> DesiredSet:
    """
    Compute the desired set for the given channels.

    Every available artefact contributes its primary and compressed variants
    (when their URL is present) at `dist/<date>/<file>`. A path claimed twice
    with the same checksum yields a single download descriptor.

    Parameters:
        pairs: `(channel, manifest)` pairs; one for sync/verify, many for a mirror build.

    Returns:
        DesiredSet: The merged preserve-set and descriptors grouped by channel.

    Raises:
        ChannelOverlapError: If two channels claim the same path with different checksums.
        ManifestError: If an artefact URL has no file name.
    """
    desired = DesiredSet()
    for channel, manifest in pairs:
        group = desired.downloads.setdefault(channel, [])
        for _package, _target, artefact in manifest.artefacts():
            for url, checksum in artefact.variants():
                path = archive_path(manifest, url)
                if desired.claim(channel, path, checksum):
                    group.append(DownloadDescriptor(url=url, path=path, checksum=checksum))

        logger.debug(
            f"{channel}: {manifest.npackages} packages, {len(group)} artefacts to mirror"
        )

    return desired
