"""
Canonical on-disk layout of the mirror.

Archives live at `dist/<date>/<file>`, dated manifests at
`dist/channel-rust-<version>.toml` (stable) or
`dist/<date>/channel-rust-<name>.toml` (date-based), and the newest manifest
of every channel name at `dist/channel-rust-<name>.toml`.
"""

import posixpath
from pathlib import PurePosixPath
from urllib.parse import urlsplit

from channelsync.constants import (
    DIST_DIR_NAME,
    MANIFEST_FILE_PREFIX,
    MANIFEST_FILE_SUFFIX,
)
from channelsync.exceptions import ManifestError

from .channel import Channel, DateBasedChannel, StableChannel
from .manifest import Manifest


def url_file_name(url: str) -> str:
    """
    Extract the file name from the path of `url`.

    The name is kept percent-encoded as it appears in the URL, so the same
    segment serves as the on-disk name and the mirror URL path.

    Raises:
        ManifestError: If the URL path has no file name component or it is not a plain name.
    """
    name = posixpath.basename(urlsplit(url).path)
    if name in ("", ".", "..") or "\\" in name:
        raise ManifestError("URL has no file name", field="url", value=url)
    return name


def archive_path(manifest: Manifest, url: str) -> PurePosixPath:
    """Relative cache path for the artefact at `url` in `manifest`."""
    return PurePosixPath(DIST_DIR_NAME, manifest.date_string, url_file_name(url))


def manifest_path(channel: Channel) -> PurePosixPath:
    """Relative path at which the manifest of `channel` is published."""
    if isinstance(channel, StableChannel):
        return PurePosixPath(
            DIST_DIR_NAME,
            f"{MANIFEST_FILE_PREFIX}{channel.version}{MANIFEST_FILE_SUFFIX}",
        )
    if isinstance(channel, DateBasedChannel):
        return PurePosixPath(
            DIST_DIR_NAME,
            channel.date_string,
            f"{MANIFEST_FILE_PREFIX}{channel.name}{MANIFEST_FILE_SUFFIX}",
        )
    raise TypeError(f"Unknown channel kind: {type(channel).__name__}")


def alias_path(channel: Channel) -> PurePosixPath:
    """Relative path that always holds the newest manifest for the name of `channel`."""
    return PurePosixPath(
        DIST_DIR_NAME,
        f"{MANIFEST_FILE_PREFIX}{channel.name}{MANIFEST_FILE_SUFFIX}",
    )
