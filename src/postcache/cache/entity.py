"""
In-memory entity cache holding canonical item bodies by id.

Ordered windows only track ordering; the full body of every item the cache
has seen lives here. Secondary indexes register by name and receive every
item written with ``index=True`` plus a call to ``invalidate()`` when the
cache is cleared.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

import structlog

from postcache.models.item import Item


class EntityIndex(Protocol):
    """Anything that can be kept in sync with an :class:`EntityCache`."""

    def set(self, item: Item) -> None: ...

    def invalidate(self) -> None: ...


class EntityCache:
    """
    Last-writer-wins store of items keyed by ``(conversation_id, id)``.

    Ids are only unique within a conversation, so every lookup names both.

    Example::

        entities = EntityCache()
        entities.register_index("conversation_id", registry)
        entities.set([item])            # stored and forwarded to the registry
        entities.get_by_id(item.conversation_id, item.id)
    """

    def __init__(self) -> None:
        self._items: dict[tuple[str, str], Item] = {}
        self._indexes: dict[str, EntityIndex] = {}
        self._logger = structlog.get_logger("postcache.entities")

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        """Membership by ``(conversation_id, id)`` pair."""
        return key in self._items

    def register_index(self, name: str, index: EntityIndex) -> None:
        """
        Register a named secondary index.

        Raises:
            ValueError: If an index with this name is already registered.
        """
        if name in self._indexes:
            raise ValueError(f"Index already registered: {name!r}")
        self._indexes[name] = index

    def index(self, name: str) -> EntityIndex:
        """Return a registered index. Raises ``KeyError`` if unknown."""
        return self._indexes[name]

    def set(self, items: Iterable[Item], *, index: bool = True) -> None:
        """
        Store *items*, replacing any previous body with the same id.

        Args:
            items: Items to store.
            index: Forward each item to the registered indexes. Pages fetched
                for a read are merged by the read path itself and skip this.
        """
        for item in items:
            self._items[(item.conversation_id, item.id)] = item
            if index:
                for idx in self._indexes.values():
                    idx.set(item)

    def get_by_id(self, conversation_id: str, item_id: str) -> Item | None:
        return self._items.get((conversation_id, item_id))

    def clear(self) -> None:
        """Drop every stored body and invalidate all registered indexes."""
        count = len(self._items)
        self._items.clear()
        for idx in self._indexes.values():
            idx.invalidate()
        self._logger.debug("entities_cleared", items=count)
