"""
Configuration loading for channelsync.

Settings come from an optional YAML file, by default
`<user config dir>/channelsync/channelsync.yaml`. Command-line values take
precedence over the file and the file over built-in defaults.
"""

import os
from typing import Any, Dict, Optional, Tuple

import platformdirs
import yaml

from channelsync.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    CONFIG_KEY_JOBS,
    CONFIG_KEY_REQUEST_TIMEOUT,
    DEFAULT_JOBS,
    DEFAULT_REQUEST_TIMEOUT,
)
from channelsync.exceptions import ConfigFileError, ConfigValidationError
from channelsync.log_utils import logger

CONFIG_DIR = platformdirs.user_config_dir(APP_NAME)
CONFIG_FILE = os.path.join(CONFIG_DIR, CONFIG_FILE_NAME)


def config_exists(config_path: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    """
    Return whether a configuration file exists and its path.

    Parameters:
        config_path (str | None): Explicit file to check; defaults to CONFIG_FILE.

    Returns:
        (bool, str|None): Whether the file was found, and its path or None.
    """
    path = config_path or CONFIG_FILE
    if os.path.isfile(path):
        return True, path
    return False, None


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the YAML configuration.

    A missing default file yields an empty configuration; a missing explicit
    file is an error.

    Parameters:
        config_path (str | None): Explicit file to load instead of CONFIG_FILE.

    Returns:
        dict: The parsed configuration mapping.

    Raises:
        ConfigFileError: If the file cannot be read or parsed, or an explicit file is missing.
        ConfigValidationError: If the document is not a mapping.
    """
    exists, path = config_exists(config_path)
    if not exists or path is None:
        if config_path:
            raise ConfigFileError("Configuration file not found", details=config_path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigFileError("Failed to read configuration", details=str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigFileError("Failed to parse configuration", details=str(e)) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigValidationError(
            "Configuration must be a mapping",
            details=f"{path} contains {type(config).__name__}",
        )

    logger.debug(f"Loaded configuration from {path}")
    return config


def get_jobs(config: Dict[str, Any], override: Optional[int] = None) -> int:
    """
    Determine the number of concurrent download jobs.

    `override` (from the command line) wins over the JOBS config value. Invalid
    values fall back to the default with a warning and values below 1 clamp to 1.

    Returns:
        int: Number of jobs, guaranteed to be >= 1.
    """
    raw_value = override if override is not None else config.get(CONFIG_KEY_JOBS, DEFAULT_JOBS)
    try:
        parsed_value = int(raw_value)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid %s value %r; using default of %d",
            CONFIG_KEY_JOBS,
            raw_value,
            DEFAULT_JOBS,
        )
        return DEFAULT_JOBS

    if parsed_value <= 0:
        logger.warning(
            "%s must be >= 1; clamping %d to 1", CONFIG_KEY_JOBS, parsed_value
        )
        return 1

    return parsed_value


def get_request_timeout(config: Dict[str, Any]) -> float:
    """
    Return the per-request timeout in seconds from REQUEST_TIMEOUT.

    Invalid or non-positive values fall back to the default with a warning.
    """
    raw_value = config.get(CONFIG_KEY_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT)
    try:
        parsed_value = float(raw_value)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid %s value %r; using default %d",
            CONFIG_KEY_REQUEST_TIMEOUT,
            raw_value,
            DEFAULT_REQUEST_TIMEOUT,
        )
        return float(DEFAULT_REQUEST_TIMEOUT)

    if parsed_value <= 0.0:
        logger.warning(
            "%s must be > 0; using default %d",
            CONFIG_KEY_REQUEST_TIMEOUT,
            DEFAULT_REQUEST_TIMEOUT,
        )
        return float(DEFAULT_REQUEST_TIMEOUT)

    return parsed_value
