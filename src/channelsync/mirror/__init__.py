"""
channelsync Cache Engine

Synchronizes a local file tree into an integrity-verified replica of one or
more release channels.

Core Components:
- channel: channel identities (stable versions and dated snapshots)
- manifest: the manifest model and its TOML codec
- layout: canonical archive, manifest and alias paths
- desired: desired-set computation with cross-channel overlap detection
- prune: post-order removal of everything outside the desired set
- orchestrator: bounded, fail-fast fetch/verify/persist of artefacts
- normalize: manifest URL rewriting to a new host
- alias: newest-snapshot selection per channel name
- cache: the pipeline tying the stages together
"""

from .alias import latest_channel, select_aliases
from .cache import ChannelCache, RunState
from .channel import Channel, DateBasedChannel, StableChannel, parse_channel
from .desired import DesiredSet, DownloadDescriptor, build_desired_set
from .digest import Sha256
from .layout import alias_path, archive_path, manifest_path, url_file_name
from .manifest import (
    Artefact,
    Manifest,
    PackageData,
    dump_manifest,
    load_manifest,
    read_manifest,
)
from .normalize import mirror_url, normalize_manifest
from .orchestrator import RefreshSummary, refresh
from .prune import PruneSummary, prune_cache, prune_tree
from .transport import Downloader, HttpDownloader, SchemeDispatcher

__all__ = [
    # Model
    "Channel",
    "StableChannel",
    "DateBasedChannel",
    "parse_channel",
    "Manifest",
    "PackageData",
    "Artefact",
    "Sha256",
    "load_manifest",
    "dump_manifest",
    "read_manifest",
    # Layout
    "archive_path",
    "manifest_path",
    "alias_path",
    "url_file_name",
    # Stages
    "DesiredSet",
    "DownloadDescriptor",
    "build_desired_set",
    "PruneSummary",
    "prune_cache",
    "prune_tree",
    "RefreshSummary",
    "refresh",
    "mirror_url",
    "normalize_manifest",
    "latest_channel",
    "select_aliases",
    # Pipeline
    "ChannelCache",
    "RunState",
    # Transport
    "Downloader",
    "HttpDownloader",
    "SchemeDispatcher",
]
