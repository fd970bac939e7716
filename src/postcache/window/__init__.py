"""Ordered per-conversation windows and their registry."""

from postcache.window.locator import (
    OUT_OF_RANGE,
    Found,
    InsertAfter,
    LocateResult,
    OutOfRange,
    locate,
)
from postcache.window.ordered import OrderedWindow
from postcache.window.registry import WindowRegistry

__all__ = [
    "locate",
    "Found",
    "InsertAfter",
    "OutOfRange",
    "OUT_OF_RANGE",
    "LocateResult",
    "OrderedWindow",
    "WindowRegistry",
]
