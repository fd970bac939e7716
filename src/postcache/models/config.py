"""Configuration models for postcache."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CacheConfig(BaseModel):
    """
    Configuration for a :class:`~postcache.cache.paginating.PaginatingCache`.

    Example::

        config = CacheConfig(default_limit=50, initial_limit=200)
        cache = PaginatingCache(fetch_page, config=config)
    """

    default_limit: int = Field(
        default=100,
        ge=1,
        le=1_000,
        description="Page size used when a request does not carry its own limit.",
    )

    initial_limit: int = Field(
        default=100,
        ge=1,
        le=1_000,
        description="Number of latest items fetched when a conversation is first initialized.",
    )

    enabled: bool = True
    """Whether windows are consulted and filled. A disabled cache fetches every read."""

    @classmethod
    def default(cls) -> CacheConfig:
        """Return a config instance with all defaults."""
        return cls()
