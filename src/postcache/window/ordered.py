"""
Ordered window of cached items for a single conversation.

The window is always one contiguous run of the conversation's history: there
is never a *known* gap between two consecutive cached items. It may be a
strict slice of the true history. ``complete`` records that nothing older
than the first cached item exists.

All operations are synchronous, so a window is never observed half-merged by
another task on the event loop.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

import structlog

from postcache.errors import InvariantViolationError
from postcache.models.item import (
    MISS,
    AfterPage,
    BeforePage,
    BetweenPage,
    FetchedPage,
    Hit,
    Item,
    LatestPage,
    ReadResult,
    SequenceNumber,
    sequence_value,
)
from postcache.window.locator import Found, InsertAfter, locate

_logger = structlog.get_logger("postcache.window")


class OrderedWindow:
    """
    Authoritative ordered view of one conversation's loaded items.

    Reads return :class:`~postcache.models.item.Hit` when the window can answer
    and ``MISS`` when the answer may depend on data outside the window. A miss
    is never a partial slice.

    Usage::

        window = OrderedWindow.from_page(request, page)
        result = window.get_before(120, limit=20)
        if result is MISS:
            ...  # fetch, then window.merge_fetched_page(request, page)
    """

    def __init__(
        self,
        conversation_id: str,
        items: Iterable[Item] = (),
        *,
        complete: bool = False,
    ) -> None:
        self.conversation_id = conversation_id
        self._items: list[Item] = []
        self._complete = complete
        self._logger = _logger.bind(conversation_id=conversation_id)
        initial = list(items)
        if initial:
            self._check_page(initial)
            self._items = initial

    @classmethod
    def from_page(
        cls,
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
        page: FetchedPage,
    ) -> OrderedWindow:
        """Create a window seeded from the first page fetched for a conversation."""
        window = cls(request.conversation_id)
        window.merge_fetched_page(request, page)
        return window

    # ── Introspection ──────────────────────────────────────────────────────────

    @property
    def complete(self) -> bool:
        """True once the window is known to start at the conversation's first item."""
        return self._complete

    @property
    def items(self) -> list[Item]:
        """A copy of the cached items, oldest first."""
        return list(self._items)

    @property
    def oldest(self) -> Item | None:
        return self._items[0] if self._items else None

    @property
    def latest(self) -> Item | None:
        return self._items[-1] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return (
            f"OrderedWindow(conversation_id={self.conversation_id!r}, "
            f"items={len(self._items)}, complete={self._complete})"
        )

    # ── Reads ──────────────────────────────────────────────────────────────────

    def read(
        self,
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
        limit: int,
    ) -> ReadResult:
        """
        Answer *request* from the window.

        Args:
            request: Any page request variant.
            limit: Page size to use when the request carries none.
        """
        if isinstance(request, BetweenPage):
            return self.get_between(request.after, request.before, request.inclusive)
        if isinstance(request, AfterPage):
            return self.get_after(request.after, request.limit or limit, request.inclusive)
        if isinstance(request, BeforePage):
            return self.get_before(request.before, request.limit or limit, request.inclusive)
        return self.get_latest(request.limit or limit)

    def get_between(
        self, after: SequenceNumber, before: SequenceNumber, inclusive: bool = False
    ) -> ReadResult:
        """Items between two cached cursors; both cursors must be cached exactly."""
        start_loc = locate(self._items, after)
        if not isinstance(start_loc, Found):
            return MISS
        end_loc = locate(self._items, before)
        if not isinstance(end_loc, Found):
            return MISS

        start, end = start_loc.index, end_loc.index
        if inclusive:
            end += 1
        else:
            start += 1
        return Hit(items=self._items[start:end], more=False)

    def get_before(
        self, before: SequenceNumber, limit: int, inclusive: bool = False
    ) -> ReadResult:
        """
        Up to *limit* items older than *before*.

        When fewer than *limit* items are cached below the cursor the answer is
        only known if the window is complete; otherwise older data must be
        fetched.
        """
        loc = locate(self._items, before)
        if not isinstance(loc, Found):
            return MISS

        end = loc.index + 1 if inclusive else loc.index
        start = end - limit
        if start < 0 and self._complete:
            return Hit(items=self._items[0:end], more=False)
        if start < 0:
            return MISS
        return Hit(items=self._items[start:end], more=True)

    def get_after(
        self, after: SequenceNumber, limit: int, inclusive: bool = False
    ) -> ReadResult:
        """
        Up to *limit* items newer than *after*.

        ``more`` is advisory here: the live feed, not the window, decides
        whether newer items exist.
        """
        loc = locate(self._items, after)
        if not isinstance(loc, Found):
            return MISS

        start = loc.index if inclusive else loc.index + 1
        end = start + limit
        return Hit(items=self._items[start:end], more=end <= len(self._items))

    def get_latest(self, limit: int) -> Hit:
        """The newest *limit* items; ``more`` when older items may exist."""
        start = len(self._items) - limit
        more = start > 0 or not self._complete
        return Hit(items=self._items[max(0, start) :], more=more)

    def find(self, sequence_number: SequenceNumber) -> Item | None:
        """Return the cached item at *sequence_number*, if any."""
        loc = locate(self._items, sequence_number)
        return self._items[loc.index] if isinstance(loc, Found) else None

    # ── Writes ─────────────────────────────────────────────────────────────────

    def insert_or_update(self, item: Item) -> bool:
        """
        Apply a live item to the window.

        Newer items are appended, a cached sequence number is replaced in
        place and an in-range miss is inserted at its sorted position. An item
        older than the oldest cached one is dropped because nothing is known
        about the history between them. ``complete`` is never changed.

        Returns:
            True if the window changed.
        """
        self._check_conversation(item)
        if not self._items or item.seq > self._items[-1].seq:
            self._items.append(item)
            return True

        loc = locate(self._items, item.sequence_number)
        if isinstance(loc, Found):
            self._items[loc.index] = item
            return True
        if isinstance(loc, InsertAfter):
            self._items.insert(loc.index + 1, item)
            return True

        self._logger.debug(
            "live_item_dropped",
            item_id=item.id,
            sequence_number=item.sequence_number,
            reason="older_than_window",
        )
        return False

    def merge_fetched_page(
        self,
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
        page: FetchedPage,
    ) -> bool:
        """
        Merge a page fetched for *request* into the window.

        The page covers a span of the history determined by the request kind.
        It is merged only when that span overlaps or touches the window, so the
        window stays contiguous; where both hold the same sequence number the
        cached copy wins since it may carry later live updates. Merging the
        same page twice is a no-op.

        ``complete`` is set when a joined page came from a request with no
        ``after`` bound and the source reports no more data.

        Returns:
            True if the page was merged.

        Raises:
            InvariantViolationError: If the page is unsorted, holds items of
                another conversation, or reuses a cached sequence number for a
                different item.
        """
        fetched = page.items
        self._check_page(fetched)

        lower_open = _lower_open(request, page)

        if not self._items:
            self._items = list(fetched)
            joined = True
        elif not fetched and not lower_open:
            joined = False
        else:
            joined = self._page_joins(request, page, lower_open)
            if joined:
                self._items = self._union(fetched)

        if not joined:
            self._logger.debug(
                "page_discarded",
                kind=request.kind,
                fetched=len(fetched),
                cached=len(self._items),
            )
            return False

        if lower_open and not self._complete:
            self._complete = True
            self._logger.debug("window_complete", items=len(self._items))

        self._logger.debug(
            "page_merged",
            kind=request.kind,
            fetched=len(fetched),
            cached=len(self._items),
            complete=self._complete,
        )
        return True

    @staticmethod
    def can_seed(
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
        page: FetchedPage,
    ) -> bool:
        """
        Whether *page* may start a new window.

        An empty page only tells us something when it reaches back to the
        start of the conversation. An empty page for a cursor past the end, or
        for a cursor that does not exist, says nothing about the history.
        """
        return bool(page.items) or _lower_open(request, page)

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _page_joins(
        self,
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
        page: FetchedPage,
        lower_open: bool,
    ) -> bool:
        if page.items:
            lo: float = page.items[0].seq
            hi: float = page.items[-1].seq
        else:
            lo, hi = math.inf, -math.inf

        if isinstance(request, LatestPage):
            hi = math.inf
        elif isinstance(request, BeforePage):
            hi = sequence_value(request.before)
        elif isinstance(request, AfterPage):
            lo = sequence_value(request.after)
        else:
            lo = sequence_value(request.after)
            hi = sequence_value(request.before)

        if lower_open:
            lo = -math.inf

        return lo <= self._items[-1].seq and hi >= self._items[0].seq

    def _union(self, fetched: list[Item]) -> list[Item]:
        cached = self._items
        merged: list[Item] = []
        i = j = 0
        while i < len(cached) and j < len(fetched):
            mine, theirs = cached[i], fetched[j]
            if mine.seq < theirs.seq:
                merged.append(mine)
                i += 1
            elif theirs.seq < mine.seq:
                merged.append(theirs)
                j += 1
            else:
                if mine.id != theirs.id:
                    raise InvariantViolationError(
                        self.conversation_id,
                        f"sequence number {mine.sequence_number!r} is held by "
                        f"{mine.id!r} and {theirs.id!r}",
                    )
                merged.append(mine)
                i += 1
                j += 1
        merged.extend(cached[i:])
        merged.extend(fetched[j:])
        return merged

    def _check_conversation(self, item: Item) -> None:
        if item.conversation_id != self.conversation_id:
            raise InvariantViolationError(
                self.conversation_id,
                f"item {item.id!r} belongs to conversation {item.conversation_id!r}",
            )

    def _check_page(self, items: list[Item]) -> None:
        previous: Item | None = None
        for item in items:
            self._check_conversation(item)
            if previous is not None and item.seq <= previous.seq:
                raise InvariantViolationError(
                    self.conversation_id,
                    f"page is not strictly ascending at sequence number "
                    f"{item.sequence_number!r}",
                )
            previous = item


def _lower_open(
    request: LatestPage | BeforePage | AfterPage | BetweenPage, page: FetchedPage
) -> bool:
    """True when the page runs back to the first item of the conversation."""
    return isinstance(request, (LatestPage, BeforePage)) and not page.more
