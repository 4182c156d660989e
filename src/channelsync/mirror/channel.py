"""
Channel identities.

A channel is either a fixed stable release (`stable:1.75.0`) or a named, dated
snapshot (`nightly:2024-01-02`). Channels are hashable and ordered within
their own kind so they can key maps and select the newest snapshot.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

from packaging.version import InvalidVersion, Version

from channelsync.constants import (
    CHANNEL_SEPARATOR,
    DATE_FORMAT,
    STABLE_CHANNEL_NAME,
)
from channelsync.exceptions import ChannelParseError


@dataclass(frozen=True, order=True)
class StableChannel:
    """A stable release identified by its semantic version."""

    major: int
    minor: int
    patch: int

    @property
    def name(self) -> str:
        return STABLE_CHANNEL_NAME

    @property
    def version(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return f"{STABLE_CHANNEL_NAME}{CHANNEL_SEPARATOR}{self.version}"


@dataclass(frozen=True, order=True)
class DateBasedChannel:
    """A dated snapshot of a named release line such as `beta` or `nightly`."""

    date: date
    name: str

    @property
    def date_string(self) -> str:
        return self.date.strftime(DATE_FORMAT)

    def __str__(self) -> str:
        return f"{self.name}{CHANNEL_SEPARATOR}{self.date_string}"


Channel = Union[StableChannel, DateBasedChannel]


def parse_version(value: str) -> StableChannel:
    """
    Parse a `MAJOR.MINOR.PATCH` stable version.

    Only plain three-component releases are accepted; pre-release, post-release,
    development and local segments are rejected.

    Raises:
        ChannelParseError: If `value` is not a plain three-component release.
    """
    try:
        version = Version(value)
    except InvalidVersion as e:
        raise ChannelParseError(
            "Invalid stable version", field="version", value=value
        ) from e

    if (
        len(version.release) != 3
        or version.epoch
        or version.pre is not None
        or version.post is not None
        or version.dev is not None
        or version.local is not None
        or str(version) != value
    ):
        raise ChannelParseError(
            "Stable version must be MAJOR.MINOR.PATCH",
            field="version",
            value=value,
        )

    major, minor, patch = version.release
    return StableChannel(major=major, minor=minor, patch=patch)


def parse_channel(value: str) -> Channel:
    """
    Parse a channel string.

    Accepted forms are `stable:MAJOR.MINOR.PATCH` and `NAME:YYYY-MM-DD`.

    Parameters:
        value (str): The channel string.

    Returns:
        Channel: A StableChannel or DateBasedChannel.

    Raises:
        ChannelParseError: If the name, version or date is missing or malformed.
    """
    name, separator, remainder = value.partition(CHANNEL_SEPARATOR)
    if not name:
        raise ChannelParseError("Missing channel name", field="channel", value=value)

    if name == STABLE_CHANNEL_NAME:
        if not separator or not remainder:
            raise ChannelParseError(
                "Missing stable version", field="channel", value=value
            )
        return parse_version(remainder)

    if not separator or not remainder:
        raise ChannelParseError("Missing channel date", field="channel", value=value)
    try:
        parsed = datetime.strptime(remainder, DATE_FORMAT).date()
    except ValueError as e:
        raise ChannelParseError(
            "Invalid channel date", field="date", value=remainder
        ) from e
    return DateBasedChannel(date=parsed, name=name)
