"""
Binary search over a window's items by sequence number.

``locate()`` never raises for a well-formed window: a target outside the
cached range is an ordinary answer (``OutOfRange``), because it simply means
the data lives outside what has been loaded so far.
"""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Sequence
from dataclasses import dataclass

from postcache.models.item import Item, SequenceNumber, sequence_value


@dataclass(frozen=True, slots=True)
class Found:
    """The target sequence number is cached at ``index``."""

    index: int


@dataclass(frozen=True, slots=True)
class InsertAfter:
    """
    The target is inside the cached range but not present.

    ``index`` is the position of the largest cached item below the target,
    so a new item belongs at ``index + 1``.
    """

    index: int


@dataclass(frozen=True, slots=True)
class OutOfRange:
    """The window is empty or the target lies beyond its first or last item."""


LocateResult = Found | InsertAfter | OutOfRange

OUT_OF_RANGE = OutOfRange()


def locate(items: Sequence[Item], target: SequenceNumber) -> LocateResult:
    """
    Find *target* in *items* (sorted ascending, unique sequence numbers).

    Args:
        items: The window's items.
        target: Sequence number to look for, int or numeric string.

    Returns:
        ``Found`` on an exact match, ``InsertAfter`` for an in-range miss,
        ``OutOfRange`` otherwise.
    """
    if not items:
        return OUT_OF_RANGE

    value = sequence_value(target)
    if value < items[0].seq or value > items[-1].seq:
        return OUT_OF_RANGE

    pos = bisect_left(items, value, key=_seq_key)
    if pos < len(items) and items[pos].seq == value:
        return Found(pos)
    return InsertAfter(pos - 1)


def _seq_key(item: Item) -> int | float:
    return item.seq
