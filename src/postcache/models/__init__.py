"""postcache data models."""

from postcache.models.config import CacheConfig
from postcache.models.item import (
    MISS,
    AfterPage,
    BeforePage,
    BetweenPage,
    FetchedPage,
    Hit,
    Item,
    LatestPage,
    Miss,
    PageRequest,
    ReadResult,
    SequenceNumber,
    page_request,
    sequence_value,
)

__all__ = [
    # Config
    "CacheConfig",
    # Items
    "Item",
    "SequenceNumber",
    "sequence_value",
    # Requests
    "LatestPage",
    "BeforePage",
    "AfterPage",
    "BetweenPage",
    "PageRequest",
    "page_request",
    # Results
    "FetchedPage",
    "Hit",
    "Miss",
    "MISS",
    "ReadResult",
]
