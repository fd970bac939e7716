"""Tests for the sequence-number binary search."""

from __future__ import annotations

import random

from postcache.window.locator import (
    OUT_OF_RANGE,
    Found,
    InsertAfter,
    OutOfRange,
    locate,
)
from tests.conftest import make_item, make_items


def linear_locate(items, target):
    """Reference implementation: scan every item."""
    if not items or target < items[0].seq or target > items[-1].seq:
        return OutOfRange()
    for index, item in enumerate(items):
        if item.seq == target:
            return Found(index)
    below = [index for index, item in enumerate(items) if item.seq < target]
    return InsertAfter(below[-1])


class TestLocate:
    def test_empty_is_out_of_range(self):
        assert locate([], 10) == OUT_OF_RANGE

    def test_below_first_is_out_of_range(self):
        items = make_items("c", [10, 20, 30])
        assert isinstance(locate(items, 9), OutOfRange)

    def test_above_last_is_out_of_range(self):
        items = make_items("c", [10, 20, 30])
        assert isinstance(locate(items, 31), OutOfRange)

    def test_exact_match_at_edges_and_middle(self):
        items = make_items("c", [10, 20, 30, 40, 50])
        assert locate(items, 10) == Found(0)
        assert locate(items, 30) == Found(2)
        assert locate(items, 50) == Found(4)

    def test_gap_returns_insert_point(self):
        items = make_items("c", [10, 20, 30])
        assert locate(items, 25) == InsertAfter(1)
        assert locate(items, 11) == InsertAfter(0)

    def test_single_item(self):
        items = make_items("c", [7])
        assert locate(items, 7) == Found(0)
        assert locate(items, 6) == OUT_OF_RANGE
        assert locate(items, 8) == OUT_OF_RANGE

    def test_numeric_strings_compare_as_numbers(self):
        """'9' < '10' numerically even though it sorts after it as text."""
        items = [make_item("c", "9"), make_item("c", "10"), make_item("c", "100")]
        assert locate(items, "10") == Found(1)
        assert locate(items, 10) == Found(1)
        assert locate(items, "50") == InsertAfter(1)

    def test_matches_linear_scan_on_random_input(self):
        rng = random.Random(20240917)
        for _ in range(300):
            size = rng.randint(0, 40)
            seqs = sorted(rng.sample(range(0, 200), size))
            items = make_items("c", seqs)
            for target in range(-5, 206, 3):
                assert locate(items, target) == linear_locate(items, target), (seqs, target)
