"""
postcache: windowed pagination cache for ordered conversation streams.

Primary entry point::

    from postcache import PaginatingCache, page_request

    async with PaginatingCache(fetch_page) as cache:
        await cache.ensure_initialized("conv_1")
        page = await cache.read(page_request("conv_1", before=120, limit=20))
        print([item.id for item in page.items], page.more)
"""

from postcache.cache import EntityCache, FetchPageFn, PaginatingCache
from postcache.errors import InvariantViolationError, PostCacheError
from postcache.models import (
    MISS,
    AfterPage,
    BeforePage,
    BetweenPage,
    CacheConfig,
    FetchedPage,
    Hit,
    Item,
    LatestPage,
    Miss,
    PageRequest,
    ReadResult,
    SequenceNumber,
    page_request,
)
from postcache.window import OrderedWindow, WindowRegistry, locate

__version__ = "0.1.0"

__all__ = [
    # Core
    "PaginatingCache",
    "FetchPageFn",
    "EntityCache",
    # Config
    "CacheConfig",
    # Models
    "Item",
    "SequenceNumber",
    "LatestPage",
    "BeforePage",
    "AfterPage",
    "BetweenPage",
    "PageRequest",
    "page_request",
    "FetchedPage",
    "Hit",
    "Miss",
    "MISS",
    "ReadResult",
    # Windows
    "OrderedWindow",
    "WindowRegistry",
    "locate",
    # Errors
    "PostCacheError",
    "InvariantViolationError",
]
