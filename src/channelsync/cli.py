# src/channelsync/cli.py

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from channelsync import config as config_module
from channelsync import log_utils
from channelsync.constants import (
    CONFIG_KEY_CACHE_DIR,
    CONFIG_KEY_HOST,
    CONFIG_KEY_LOG_DIR,
    CONFIG_KEY_LOG_LEVEL,
)
from channelsync.exceptions import ChannelSyncError, ConfigValidationError
from channelsync.mirror import (
    ChannelCache,
    HttpDownloader,
    SchemeDispatcher,
    parse_channel,
    read_manifest,
)
from channelsync.mirror.channel import Channel
from channelsync.mirror.manifest import Manifest


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the channelsync command line."""
    parser = argparse.ArgumentParser(
        description="channelsync - mirror release channels into a verified local cache"
    )
    parser.add_argument(
        "--config",
        help="Path to a YAML configuration file (defaults to the user config directory)",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        help="Number of downloads that may run in parallel",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--log-dir",
        help="Also write a rotating log file into this directory",
    )
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("sync", "Synchronise a cache with a channel manifest, pruning unlisted files"),
        (
            "verify",
            "(Re)download missing or corrupt files described in a manifest without removing anything",
        ),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-p", "--path", help="Path of the cache")
        sub.add_argument(
            "-m", "--manifest", required=True, help="Path to the channel manifest"
        )
        sub.add_argument(
            "-c",
            "--channel",
            required=True,
            help="Channel of the manifest, e.g. stable:1.75.0 or nightly:2024-01-02",
        )

    build_parser_ = subparsers.add_parser(
        "build", help="Build a re-hostable mirror of several channels"
    )
    build_parser_.add_argument("-p", "--path", help="Path of the cache")
    build_parser_.add_argument(
        "--host", help="Base URL the mirror is served from; manifests are rewritten to it"
    )
    build_parser_.add_argument(
        "-m",
        "--manifest",
        dest="manifests",
        nargs=2,
        action="append",
        required=True,
        metavar=("MANIFEST", "CHANNEL"),
        help="A manifest path and its channel (may be passed multiple times)",
    )

    subparsers.add_parser("version", help="Display channelsync version")
    return parser


def _configure_logging(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    level = args.log_level or config.get(CONFIG_KEY_LOG_LEVEL)
    if level:
        log_utils.set_log_level(str(level))
    log_dir = args.log_dir or config.get(CONFIG_KEY_LOG_DIR)
    if log_dir:
        log_utils.add_file_logging(Path(log_dir), str(level or "INFO"))


def _resolve_cache_path(args: argparse.Namespace, config: Dict[str, Any]) -> Path:
    path = args.path or config.get(CONFIG_KEY_CACHE_DIR)
    if not path:
        raise ConfigValidationError(
            "No cache path given",
            details=f"pass --path or set {CONFIG_KEY_CACHE_DIR} in the configuration",
        )
    return Path(path)


async def _load_channels(
    entries: Sequence[Tuple[str, str]],
) -> List[Tuple[Channel, Manifest]]:
    pairs = []
    for manifest_file, channel_string in entries:
        channel = parse_channel(channel_string)
        manifest = await read_manifest(Path(manifest_file))
        log_utils.logger.info(
            f"Loaded {channel} from {manifest_file} ({manifest.npackages} packages)"
        )
        pairs.append((channel, manifest))
    return pairs


async def run_command(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    """
    Execute a sync, verify or build command.

    Raises:
        ChannelSyncError: If configuration, manifest loading or any engine stage fails.
    """
    cache_path = _resolve_cache_path(args, config)
    jobs = config_module.get_jobs(config, args.jobs)
    timeout = config_module.get_request_timeout(config)

    if args.command == "build":
        entries = [tuple(pair) for pair in args.manifests]
    else:
        entries = [(args.manifest, args.channel)]
    pairs = await _load_channels(entries)

    http = HttpDownloader(max_connections=jobs, timeout=timeout)
    async with SchemeDispatcher(http) as downloader:
        cache = ChannelCache(cache_path, downloader, jobs=jobs)
        if args.command == "sync":
            await cache.synchronise(*pairs[0])
        elif args.command == "verify":
            await cache.verify(*pairs[0])
        else:
            host = args.host or config.get(CONFIG_KEY_HOST)
            await cache.build(pairs, host=host)


def get_channelsync_version() -> str:
    """
    Get the installed channelsync package version.

    Returns:
        version (str): The installed version string, or "unknown" if it cannot be determined.
    """
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("channelsync")
    except PackageNotFoundError:
        return "unknown"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entry point for the channelsync command-line interface.

    Parses arguments, loads configuration and dispatches the sync, verify,
    build and version subcommands.

    Returns:
        int: Process exit status; 0 on success, 1 on any error.
    """
    # Logging is initialized by importing log_utils
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "version":
        print(f"channelsync {get_channelsync_version()}")
        return 0

    try:
        config = config_module.load_config(args.config)
        _configure_logging(args, config)
        asyncio.run(run_command(args, config))
    except ChannelSyncError as e:
        log_utils.logger.error(f"{args.command} failed: {e}")
        return 1
    except KeyboardInterrupt:
        log_utils.logger.error("Interrupted")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
