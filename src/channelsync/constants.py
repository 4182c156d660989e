"""
Constants and configuration values for channelsync.

This module contains the fixed path fragments, defaults, timeouts and log
formats used throughout the application.
"""

import os

# Cache layout
DIST_DIR_NAME = "dist"
MANIFEST_FILE_PREFIX = "channel-rust-"
MANIFEST_FILE_SUFFIX = ".toml"
DATE_FORMAT = "%Y-%m-%d"

# Channel names
STABLE_CHANNEL_NAME = "stable"
CHANNEL_SEPARATOR = ":"

# Manifest fields as written by the upstream codec
MANIFEST_DATE_KEY = "date"
MANIFEST_PACKAGES_KEY = "pkg"
PACKAGE_TARGETS_KEY = "target"
ARTEFACT_AVAILABLE_KEY = "available"
ARTEFACT_URL_KEY = "url"
ARTEFACT_HASH_KEY = "hash"
ARTEFACT_XZ_URL_KEY = "xz_url"
ARTEFACT_XZ_HASH_KEY = "xz_hash"

# Checksums
SHA256_DIGEST_SIZE = 32
SHA256_HEX_LENGTH = SHA256_DIGEST_SIZE * 2

# Download configuration defaults
DEFAULT_JOBS = os.cpu_count() or 1
DEFAULT_REQUEST_TIMEOUT = 300
DEFAULT_CHUNK_SIZE = 64 * 1024
SUPPORTED_URL_SCHEMES = ("http", "https")
HTTP_STATUS_SUCCESS_MIN = 200
HTTP_STATUS_SUCCESS_MAX = 299
BYTES_PER_MEGABYTE = 1024 * 1024
FILE_SIZE_MB_LOGGING_THRESHOLD = 1.0
PRUNE_THREAD_NAME = "channelsync-prune"

# Configuration
APP_NAME = "channelsync"
CONFIG_FILE_NAME = "channelsync.yaml"
CONFIG_KEY_CACHE_DIR = "CACHE_DIR"
CONFIG_KEY_HOST = "HOST"
CONFIG_KEY_JOBS = "JOBS"
CONFIG_KEY_LOG_LEVEL = "LOG_LEVEL"
CONFIG_KEY_LOG_DIR = "LOG_DIR"
CONFIG_KEY_REQUEST_TIMEOUT = "REQUEST_TIMEOUT"

# Logging
LOGGER_NAME = "channelsync"
LOG_FILE_NAME = "channelsync.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
LOG_LEVEL_ENV_VAR = "CHANNELSYNC_LOG_LEVEL"
