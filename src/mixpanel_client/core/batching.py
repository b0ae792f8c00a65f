"""
Batch partitioner — splits messages by routing category and by the wire batch cap.
"""

from typing import Iterable, NamedTuple, Optional, TypeVar

from mixpanel_client.models.message import MixpanelMessage

MAX_BATCH_SIZE = 50

T = TypeVar("T")


class Partition(NamedTuple):
    track_batches: list[list[MixpanelMessage]]
    engage_batches: list[list[MixpanelMessage]]
    # None entries (failed builds) left out of the batches
    dropped: int = 0


def chunk(items: list[T], size: int = MAX_BATCH_SIZE) -> list[list[T]]:
    """Consecutive slices of at most ``size`` items; no slice for an empty list."""
    if size <= 0:
        raise ValueError(f"size must be positive; got {size}")
    return [items[start:start + size] for start in range(0, len(items), size)]


def partition(messages: Iterable[Optional[MixpanelMessage]], size: int = MAX_BATCH_SIZE) -> Partition:
    track: list[MixpanelMessage] = []
    engage: list[MixpanelMessage] = []
    dropped = 0
    for message in messages:
        if message is None:
            dropped += 1
            continue
        if message.kind.is_track_like:
            track.append(message)
        elif message.kind.is_engage_like:
            engage.append(message)
        else:
            raise ValueError(f"Message kind '{message.kind.value}' cannot be sent in a batch")
    return Partition(chunk(track, size), chunk(engage, size), dropped)
