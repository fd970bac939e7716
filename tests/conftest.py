"""Shared fixtures for postcache tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import pytest
import pytest_asyncio

from postcache.cache.paginating import PaginatingCache
from postcache.models.config import CacheConfig
from postcache.models.item import (
    AfterPage,
    BeforePage,
    BetweenPage,
    FetchedPage,
    Item,
    LatestPage,
    sequence_value,
)


def make_item(
    conversation_id: str,
    seq: int | str,
    item_id: str | None = None,
    **extra: Any,
) -> Item:
    """Helper to create a test Item."""
    return Item(
        id=item_id or f"item_{conversation_id}_{seq}",
        conversation_id=conversation_id,
        sequence_number=seq,
        **extra,
    )


def make_items(conversation_id: str, seqs: Iterable[int | str]) -> list[Item]:
    return [make_item(conversation_id, s) for s in seqs]


class FakeSource:
    """
    In-memory stand-in for the remote fetch function.

    Serves the four request kinds from a full per-conversation history and
    records every request. Set ``gate`` to hold fetches in flight until the
    event is set, and ``error`` to make fetches fail.
    """

    def __init__(self, history: dict[str, list[Item]] | None = None) -> None:
        self.history: dict[str, list[Item]] = history or {}
        self.calls: list[LatestPage | BeforePage | AfterPage | BetweenPage] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def fetch_page(
        self, request: LatestPage | BeforePage | AfterPage | BetweenPage
    ) -> FetchedPage:
        self.calls.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

        items = self.history.get(request.conversation_id, [])
        if isinstance(request, LatestPage):
            limit = request.limit or 100
            return FetchedPage(items=items[-limit:], more=len(items) > limit)
        if isinstance(request, BeforePage):
            limit = request.limit or 100
            bound = sequence_value(request.before)
            older = [
                i for i in items if i.seq < bound or (request.inclusive and i.seq == bound)
            ]
            return FetchedPage(items=older[-limit:], more=len(older) > limit)
        if isinstance(request, AfterPage):
            limit = request.limit or 100
            bound = sequence_value(request.after)
            newer = [
                i for i in items if i.seq > bound or (request.inclusive and i.seq == bound)
            ]
            return FetchedPage(items=newer[:limit], more=len(newer) > limit)

        lo, hi = sequence_value(request.after), sequence_value(request.before)
        if request.inclusive:
            inside = [i for i in items if lo <= i.seq <= hi]
        else:
            inside = [i for i in items if lo < i.seq < hi]
        return FetchedPage(items=inside, more=False)


async def wait_for_calls(source: FakeSource, count: int) -> None:
    """Yield to the event loop until *source* has seen *count* fetches."""

    async def _poll() -> None:
        while len(source.calls) < count:
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout=1.0)


@pytest.fixture
def source():
    """FakeSource with one conversation of 250 items (seq 1..250) and an empty one."""
    return FakeSource(
        {
            "conv_a": make_items("conv_a", range(1, 251)),
            "conv_empty": [],
        }
    )


@pytest.fixture
def config():
    return CacheConfig(default_limit=50, initial_limit=100)


@pytest_asyncio.fixture
async def cache(source, config):
    """PaginatingCache backed by the fake source. Closed after each test."""
    c = PaginatingCache(source.fetch_page, config)
    yield c
    await c.close()
