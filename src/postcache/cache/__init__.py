"""postcache caching layer."""

from postcache.cache.entity import EntityCache, EntityIndex
from postcache.cache.paginating import FetchPageFn, PaginatingCache

__all__ = [
    "EntityCache",
    "EntityIndex",
    "FetchPageFn",
    "PaginatingCache",
]
