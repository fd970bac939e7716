"""
Paginating cache: the public read/write surface of postcache.

``PaginatingCache`` answers paginated reads from per-conversation windows and
falls back to the remote fetch function on a miss. First reads of a
conversation go through ``ensure_initialized()``, which is single-flight:
concurrent callers for the same conversation share one in-flight fetch.

Everything except the fetch call runs synchronously on the event loop, so no
locks are needed: a task can only be suspended while awaiting the fetch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

import structlog

from postcache.cache.entity import EntityCache
from postcache.models.config import CacheConfig
from postcache.models.item import (
    AfterPage,
    BeforePage,
    BetweenPage,
    FetchedPage,
    Hit,
    Item,
    LatestPage,
    sequence_value,
)
from postcache.window.ordered import OrderedWindow
from postcache.window.registry import WindowRegistry

FetchPageFn = Callable[[LatestPage | BeforePage | AfterPage | BetweenPage], Awaitable[FetchedPage]]


class PaginatingCache:
    """
    Windowed, cursor-paginated cache over each conversation's items.

    The fetch function owns timeouts and retries; its errors propagate to the
    caller unchanged and nothing is committed for a failed fetch.

    Usage::

        async def fetch_page(request: PageRequest) -> FetchedPage:
            return await api.fetch_posts(request)

        async with PaginatingCache(fetch_page) as cache:
            await cache.ensure_initialized("conv_1")
            page = await cache.read(page_request("conv_1", before=120, limit=20))
            cache.upsert(live_item)
    """

    def __init__(
        self,
        fetch_page: FetchPageFn,
        config: CacheConfig | None = None,
        *,
        entities: EntityCache | None = None,
    ) -> None:
        self._fetch_page = fetch_page
        self._config = config or CacheConfig.default()
        self._entities = entities if entities is not None else EntityCache()
        self._registry = WindowRegistry()
        self._registry.enabled = self._config.enabled
        self._entities.register_index("conversation_id", self._registry)
        self._initializing: dict[str, asyncio.Task[Hit]] = {}
        self._logger = structlog.get_logger("postcache.cache")

    async def __aenter__(self) -> PaginatingCache:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ── Properties ─────────────────────────────────────────────────────────────

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def registry(self) -> WindowRegistry:
        return self._registry

    @property
    def entities(self) -> EntityCache:
        return self._entities

    @property
    def enabled(self) -> bool:
        return self._registry.enabled

    def is_initialized(self, conversation_id: str) -> bool:
        return self._registry.is_initialized(conversation_id)

    # ── Reads ──────────────────────────────────────────────────────────────────

    async def read(self, request: LatestPage | BeforePage | AfterPage | BetweenPage) -> Hit:
        """
        Answer a page request, fetching from the source on a cache miss.

        On a miss the source is asked for the same kind of page, widened to
        include an exclusive cursor item so that the window can answer the
        request on its own afterwards. The page is merged and the request
        re-read from the window; if the page could not be joined to the window
        the answer is cut from the fetched page instead. Either way a
        successful fetch answers its own request.

        Raises:
            Exception: Whatever the fetch function raises, unchanged.
        """
        limit = self._config.default_limit
        result = self._registry.read(request, limit)
        if isinstance(result, Hit):
            return result

        resolved = self._resolve_limit(request)
        fetch_request = self._widen(resolved)
        self._logger.debug(
            "cache_miss", conversation_id=request.conversation_id, kind=request.kind
        )
        generation = self._registry.generation
        page = await self._fetch_page(fetch_request)

        if generation != self._registry.generation:
            # Windows were invalidated while the fetch was in flight.
            self._logger.info(
                "stale_page_skipped", conversation_id=request.conversation_id, kind=request.kind
            )
            return _answer_from_page(resolved, page)

        window = self._registry.get_or_create(fetch_request, page)
        self._entities.set(_kept_bodies(window, page), index=False)

        result = self._registry.read(resolved, limit)
        if isinstance(result, Hit):
            return result
        self._logger.debug(
            "served_from_fetch", conversation_id=request.conversation_id, kind=request.kind
        )
        return _answer_from_page(resolved, page)

    async def ensure_initialized(self, conversation_id: str) -> None:
        """
        Make sure a window exists for *conversation_id*.

        Concurrent callers share a single fetch of the latest
        ``config.initial_limit`` items and all see its outcome. The in-flight
        entry is dropped once the fetch settles, so a failure can be retried by
        the next caller. Cancelling one waiter does not cancel the shared fetch.
        """
        if not self.enabled or self._registry.is_initialized(conversation_id):
            return

        task = self._initializing.get(conversation_id)
        if task is None or task.done():
            self._logger.debug("initializing_conversation", conversation_id=conversation_id)
            task = asyncio.create_task(
                self.read(
                    LatestPage(conversation_id=conversation_id, limit=self._config.initial_limit)
                )
            )
            self._initializing[conversation_id] = task
            task.add_done_callback(partial(self._initialization_settled, conversation_id))
        else:
            self._logger.debug("initialization_joined", conversation_id=conversation_id)

        await asyncio.shield(task)

    def get_by_id(self, conversation_id: str, item_id: str) -> Item | None:
        """Return the canonical body of any item the cache has seen."""
        return self._entities.get_by_id(conversation_id, item_id)

    # ── Writes ─────────────────────────────────────────────────────────────────

    def upsert(self, item: Item) -> None:
        """
        Apply a live item (new or edited) without fetching.

        The body is always stored; the item reaches a window only if its
        conversation has been opened by a read.
        """
        self._entities.set([item])

    async def record(self, item: Item) -> None:
        """Initialize the item's conversation if needed, then upsert the item."""
        await self.ensure_initialized(item.conversation_id)
        self.upsert(item)

    def invalidate_all(self) -> None:
        """
        Forget every window, body and pending initialization.

        Use when the source is known to be stale (e.g. after reconnecting with a
        gap). Fetches still in flight finish but are not merged.
        """
        pending = len(self._initializing)
        self._entities.clear()
        self._initializing.clear()
        self._logger.info("cache_invalidated", pending_initializations=pending)

    def enable(self) -> None:
        self._registry.enabled = True

    def disable(self) -> None:
        """Stop using windows; every read goes to the source until ``enable()``."""
        self.invalidate_all()
        self._registry.enabled = False

    async def close(self) -> None:
        """Cancel pending initializations and wait for them to finish."""
        tasks = list(self._initializing.values())
        self._initializing.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _resolve_limit(
        self, request: LatestPage | BeforePage | AfterPage | BetweenPage
    ) -> LatestPage | BeforePage | AfterPage | BetweenPage:
        if isinstance(request, BetweenPage) or request.limit is not None:
            return request
        return request.model_copy(update={"limit": self._config.default_limit})

    @staticmethod
    def _widen(
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
    ) -> LatestPage | BeforePage | AfterPage | BetweenPage:
        """Ask for the cursor items too, so the merged window contains them."""
        if isinstance(request, LatestPage) or request.inclusive:
            return request
        if isinstance(request, BetweenPage):
            return request.model_copy(update={"inclusive": True})
        return request.model_copy(update={"inclusive": True, "limit": request.limit + 1})

    def _initialization_settled(self, conversation_id: str, task: asyncio.Task[Hit]) -> None:
        if self._initializing.get(conversation_id) is task:
            del self._initializing[conversation_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.warning(
                "initialization_failed", conversation_id=conversation_id, error=str(exc)
            )


def _kept_bodies(window: OrderedWindow | None, page: FetchedPage) -> list[Item]:
    """
    Fetched items as the window ended up holding them.

    A merge keeps the cached copy where both hold a sequence number, and the
    entity cache must agree with it.
    """
    if window is None:
        return page.items
    return [window.find(item.sequence_number) or item for item in page.items]


def _answer_from_page(
    request: LatestPage | BeforePage | AfterPage | BetweenPage, page: FetchedPage
) -> Hit:
    """Cut the answer to *request* out of a page fetched with widened cursors."""
    if isinstance(request, LatestPage):
        return Hit(items=page.items, more=page.more)

    if isinstance(request, BetweenPage):
        lo, hi = sequence_value(request.after), sequence_value(request.before)
        if request.inclusive:
            items = [i for i in page.items if lo <= i.seq <= hi]
        else:
            items = [i for i in page.items if lo < i.seq < hi]
        return Hit(items=items, more=False)

    limit = request.limit or len(page.items)
    if isinstance(request, BeforePage):
        bound = sequence_value(request.before)
        items = [i for i in page.items if i.seq < bound or (request.inclusive and i.seq == bound)]
        return Hit(items=items[-limit:], more=page.more or len(items) > limit)

    bound = sequence_value(request.after)
    items = [i for i in page.items if i.seq > bound or (request.inclusive and i.seq == bound)]
    return Hit(items=items[:limit], more=page.more or len(items) > limit)
