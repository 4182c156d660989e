"""
Channel aliasing: pick the newest snapshot of every channel name.
"""

from typing import Dict, Iterable, List, Tuple

from channelsync.exceptions import MixedChannelKindError

from .channel import Channel, DateBasedChannel, StableChannel
from .manifest import Manifest


def latest_channel(channels: Iterable[Channel]) -> Channel:
    """
    Return the greatest channel of a group sharing one display name.

    Stable channels order by version and date-based channels by date. The two
    kinds have no common ordering.

    Raises:
        MixedChannelKindError: If the group contains both kinds.
        ValueError: If `channels` is empty.
    """
    group = list(channels)
    if not group:
        raise ValueError("Cannot select the latest of no channels")

    if all(isinstance(c, StableChannel) for c in group):
        return max(group)
    if all(isinstance(c, DateBasedChannel) for c in group):
        return max(group)
    raise MixedChannelKindError(group[0].name)


def select_aliases(
    pairs: Iterable[Tuple[Channel, Manifest]],
) -> Dict[str, Tuple[Channel, Manifest]]:
    """
    Group `(channel, manifest)` pairs by channel name and keep the newest of each.

    Parameters:
        pairs: Normalized `(channel, manifest)` pairs.

    Returns:
        Dict[str, Tuple[Channel, Manifest]]: The newest pair per channel name.

    Raises:
        MixedChannelKindError: If one name is used by both stable and date-based channels.
    """
    groups: Dict[str, List[Tuple[Channel, Manifest]]] = {}
    for channel, manifest in pairs:
        groups.setdefault(channel.name, []).append((channel, manifest))

    aliases: Dict[str, Tuple[Channel, Manifest]] = {}
    for name, members in groups.items():
        newest = latest_channel(channel for channel, _ in members)
        aliases[name] = next(pair for pair in members if pair[0] == newest)
    return aliases
