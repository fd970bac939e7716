"""Tests for WindowRegistry and the EntityCache it indexes."""

from __future__ import annotations

import pytest

from postcache.cache.entity import EntityCache
from postcache.models.item import MISS, AfterPage, FetchedPage, Hit, LatestPage
from postcache.window.registry import WindowRegistry
from tests.conftest import make_item, make_items


def latest(conversation_id: str, limit: int = 10) -> LatestPage:
    return LatestPage(conversation_id=conversation_id, limit=limit)


class TestWindowRegistry:
    def test_unknown_conversation(self):
        registry = WindowRegistry()
        assert registry.get("conv_1") is None
        assert registry.is_initialized("conv_1") is False
        assert registry.read(latest("conv_1"), 10) is MISS

    def test_get_or_create_seeds_then_merges(self):
        registry = WindowRegistry()
        first = registry.get_or_create(
            latest("conv_1", 2), FetchedPage(items=make_items("conv_1", [3, 4]), more=True)
        )
        assert registry.get("conv_1") is first

        again = registry.get_or_create(
            latest("conv_1", 4), FetchedPage(items=make_items("conv_1", [1, 2, 3, 4]))
        )
        assert again is first
        assert [i.seq for i in first.items] == [1, 2, 3, 4]
        assert first.complete is True

    def test_empty_cursor_page_does_not_seed(self):
        registry = WindowRegistry()
        request = AfterPage(conversation_id="conv_1", after=300, limit=5)
        assert registry.get_or_create(request, FetchedPage()) is None
        assert registry.is_initialized("conv_1") is False

    def test_empty_page_from_the_start_seeds_complete_window(self):
        registry = WindowRegistry()
        window = registry.get_or_create(latest("conv_1"), FetchedPage())
        assert window is not None
        assert len(window) == 0
        assert window.complete is True

    def test_read_dispatches_to_window(self):
        registry = WindowRegistry()
        registry.get_or_create(latest("conv_1"), FetchedPage(items=make_items("conv_1", [1, 2, 3])))
        result = registry.read(latest("conv_1", 2), 50)
        assert isinstance(result, Hit)
        assert [i.seq for i in result.items] == [2, 3]

    def test_upsert_without_window_is_dropped(self):
        registry = WindowRegistry()
        assert registry.upsert(make_item("conv_1", 1)) is False
        assert registry.get("conv_1") is None

    def test_upsert_routes_to_window(self):
        registry = WindowRegistry()
        registry.get_or_create(latest("conv_1"), FetchedPage(items=make_items("conv_1", [1, 2])))
        registry.get_or_create(latest("conv_2"), FetchedPage(items=make_items("conv_2", [1])))
        assert registry.upsert(make_item("conv_2", 2)) is True
        assert len(registry.get("conv_1")) == 2
        assert len(registry.get("conv_2")) == 2

    def test_invalidate_all_drops_windows(self):
        registry = WindowRegistry()
        registry.get_or_create(latest("conv_1"), FetchedPage(items=make_items("conv_1", [1])))
        generation = registry.generation
        registry.invalidate_all()
        assert len(registry) == 0
        assert registry.generation == generation + 1
        assert registry.read(latest("conv_1"), 10) is MISS

    def test_disabled_registry_ignores_reads_and_writes(self):
        registry = WindowRegistry()
        registry.enabled = False
        page = FetchedPage(items=make_items("conv_1", [1]))
        assert registry.get_or_create(latest("conv_1"), page) is None
        assert registry.read(latest("conv_1"), 10) is MISS
        assert registry.upsert(make_item("conv_1", 2)) is False


class TestEntityCache:
    def test_set_and_get_by_id(self):
        entities = EntityCache()
        item = make_item("conv_1", 1, item_id="post_1")
        entities.set([item])
        assert entities.get_by_id("conv_1", "post_1") == item
        assert ("conv_1", "post_1") in entities
        assert entities.get_by_id("conv_1", "missing") is None
        assert entities.get_by_id("conv_2", "post_1") is None

    def test_same_id_in_two_conversations(self):
        entities = EntityCache()
        entities.set([make_item("conv_1", 1, item_id="post_1", text="one")])
        entities.set([make_item("conv_2", 9, item_id="post_1", text="two")])
        assert len(entities) == 2
        assert entities.get_by_id("conv_1", "post_1").text == "one"
        assert entities.get_by_id("conv_2", "post_1").text == "two"

    def test_last_writer_wins(self):
        entities = EntityCache()
        entities.set([make_item("conv_1", 1, item_id="post_1", text="a")])
        entities.set([make_item("conv_1", 1, item_id="post_1", text="b")])
        assert entities.get_by_id("conv_1", "post_1").text == "b"
        assert len(entities) == 1

    def test_set_forwards_to_registered_index(self):
        entities = EntityCache()
        registry = WindowRegistry()
        entities.register_index("conversation_id", registry)
        registry.get_or_create(latest("conv_1"), FetchedPage(items=make_items("conv_1", [1])))

        entities.set([make_item("conv_1", 2)])
        assert len(registry.get("conv_1")) == 2

        entities.set([make_item("conv_1", 3)], index=False)
        assert len(registry.get("conv_1")) == 2

    def test_clear_invalidates_indexes(self):
        entities = EntityCache()
        registry = WindowRegistry()
        entities.register_index("conversation_id", registry)
        registry.get_or_create(latest("conv_1"), FetchedPage(items=make_items("conv_1", [1])))
        entities.set([make_item("conv_1", 2)])

        entities.clear()
        assert len(entities) == 0
        assert registry.get("conv_1") is None

    def test_duplicate_index_name_raises(self):
        entities = EntityCache()
        entities.register_index("conversation_id", WindowRegistry())
        with pytest.raises(ValueError):
            entities.register_index("conversation_id", WindowRegistry())
