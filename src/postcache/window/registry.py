"""Per-conversation registry of ordered windows."""

from __future__ import annotations

import structlog

from postcache.models.item import (
    MISS,
    AfterPage,
    BeforePage,
    BetweenPage,
    FetchedPage,
    Item,
    LatestPage,
    ReadResult,
)
from postcache.window.ordered import OrderedWindow


class WindowRegistry:
    """
    Maps conversation ids to their :class:`OrderedWindow`.

    Windows are only created by the read path (``get_or_create``). Live items
    for a conversation nobody has opened are dropped by ``upsert``.

    The registry doubles as the ``conversation_id`` index of an
    :class:`~postcache.cache.entity.EntityCache`: it implements ``set()`` and
    ``invalidate()`` so the entity cache can forward writes to it.

    ``generation`` is bumped on every ``invalidate_all()`` so callers holding a
    fetch across a suspension point can tell that the windows they fetched for
    no longer exist.
    """

    def __init__(self) -> None:
        self._windows: dict[str, OrderedWindow] = {}
        self._generation = 0
        self.enabled = True
        self._logger = structlog.get_logger("postcache.registry")

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._windows)

    def get(self, conversation_id: str) -> OrderedWindow | None:
        return self._windows.get(conversation_id)

    def is_initialized(self, conversation_id: str) -> bool:
        return conversation_id in self._windows

    def read(
        self,
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
        limit: int,
    ) -> ReadResult:
        """Answer *request* from its conversation's window, or ``MISS``."""
        if not self.enabled:
            return MISS
        window = self._windows.get(request.conversation_id)
        if window is None:
            return MISS
        return window.read(request, limit)

    def get_or_create(
        self,
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
        page: FetchedPage,
    ) -> OrderedWindow | None:
        """
        Store a fetched page: seed a new window or merge into the existing one.

        Returns:
            The conversation's window, or None while the registry is disabled
            or when no window exists and the page cannot seed one.
        """
        if not self.enabled:
            return None
        window = self._windows.get(request.conversation_id)
        if window is None:
            if not OrderedWindow.can_seed(request, page):
                self._logger.debug(
                    "empty_page_not_seeded",
                    conversation_id=request.conversation_id,
                    kind=request.kind,
                )
                return None
            window = OrderedWindow.from_page(request, page)
            self._windows[request.conversation_id] = window
            self._logger.debug(
                "window_created",
                conversation_id=request.conversation_id,
                items=len(window),
                complete=window.complete,
            )
        else:
            window.merge_fetched_page(request, page)
        return window

    def upsert(self, item: Item) -> bool:
        """
        Route a live item to its conversation's window.

        Returns:
            True if a window took the item.
        """
        if not self.enabled:
            return False
        window = self._windows.get(item.conversation_id)
        if window is None:
            return False
        return window.insert_or_update(item)

    def invalidate_all(self) -> None:
        """Drop every window; the next read of any conversation fetches again."""
        count = len(self._windows)
        self._windows.clear()
        self._generation += 1
        self._logger.info("windows_invalidated", windows=count, generation=self._generation)

    # Entity cache index protocol

    def set(self, item: Item) -> None:
        self.upsert(item)

    def invalidate(self) -> None:
        self.invalidate_all()
