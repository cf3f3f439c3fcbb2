"""
Tests for the Catalog Index and Cache
=====================================

Tests category/regex lookups and single-flight catalog memoization.
"""

import threading

import pytest

from node_provisioner.catalog.cache import CatalogCache
from node_provisioner.catalog.index import CatalogIndex, compile_pattern, first_or_default
from node_provisioner.errors import ConfigurationError


class TestCatalogIndex:
    """Test CatalogIndex lookups."""

    def test_items_by_category(self, guest_catalog):
        """Items are indexed by every category code they carry."""
        index = CatalogIndex(guest_catalog)
        assert [item.id for item in index.items_by_category("ram")] == [2]
        assert index.items_by_category("missing") == []

    def test_item_in_several_categories(self, item_factory):
        """An item tagged twice shows up under both categories."""
        disk = item_factory(7, [70], ["guest_disk0", "guest_disk1"], "25 GB (SAN)")
        index = CatalogIndex([disk])
        assert index.items_by_category("guest_disk0") == [disk]
        assert index.items_by_category("guest_disk1") == [disk]

    def test_duplicate_items_indexed_once(self, item_factory):
        """The same item id listed twice is indexed once."""
        first = item_factory(1, [10], ["ram"], "1 GB")
        again = item_factory(1, [10], ["ram"], "1 GB")
        index = CatalogIndex([first, again])
        assert len(index) == 1
        assert index.items_by_category("ram") == [first]

    def test_items_matching_full_description(self, guest_catalog):
        """Description patterns must match the whole description."""
        index = CatalogIndex(guest_catalog)
        matches = index.items_matching("[0-9]+ x ([0-9.]+) GHz Core[s]?")
        assert [item.id for item in matches] == [1]
        assert index.items_matching("GHz") == []

    def test_items_in_categories_matching(self, item_factory):
        """Category patterns select items by category code."""
        index = CatalogIndex([
            item_factory(1, [10], ["guest_disk0"]),
            item_factory(2, [20], ["guest_disk1"]),
            item_factory(3, [30], ["guest_disk2"]),
            item_factory(4, [40], ["ram"]),
        ])
        matches = index.items_in_categories_matching("guest_disk[1-5]")
        assert [item.id for item in matches] == [2, 3]

    def test_items_with_price_id(self, guest_catalog):
        index = CatalogIndex(guest_catalog)
        assert [item.id for item in index.items_with_price_id(789)] == [3]

    def test_item_with_id(self, guest_catalog):
        index = CatalogIndex(guest_catalog)
        assert index.item_with_id(4).description.startswith("10 Mbps")
        assert index.item_with_id(99) is None

    def test_missing_catalog_is_precondition_violation(self):
        """Building an index without a catalog is a programming error."""
        with pytest.raises(ValueError):
            CatalogIndex(None)


class TestHelpers:
    """Test lookup helpers."""

    def test_first_or_default(self):
        assert first_or_default([3, 4]) == 3
        assert first_or_default([]) is None
        assert first_or_default([], default=7) == 7

    def test_malformed_pattern(self):
        """Malformed regexes are configuration errors."""
        with pytest.raises(ConfigurationError):
            compile_pattern("([0-9]")


class TestCatalogItem:
    """Test CatalogItem."""

    def test_equality_by_id(self, item_factory):
        """Items compare by id only."""
        assert item_factory(1, [10], ["ram"], "1 GB") == item_factory(1, [11], ["disk0"], "other")
        assert item_factory(1, [10]) != item_factory(2, [10])

    def test_first_price_required(self, item_factory):
        from node_provisioner.errors import CatalogResolutionError

        with pytest.raises(CatalogResolutionError):
            item_factory(1, []).first_price


class TestCatalogCache:
    """Test single-flight catalog memoization."""

    def test_loads_once(self, guest_catalog):
        """Repeated lookups reuse the first load."""
        cache = CatalogCache()
        calls = []

        def loader():
            calls.append(1)
            return guest_catalog

        first = cache.get(46, "tester", loader)
        second = cache.get(46, "tester", loader)
        assert first is second
        assert len(calls) == 1

    def test_keyed_by_family_and_session(self, guest_catalog):
        cache = CatalogCache()
        calls = []

        def loader():
            calls.append(1)
            return guest_catalog

        cache.get(46, "alice", loader)
        cache.get(46, "bob", loader)
        cache.get(50, "alice", loader)
        assert len(calls) == 3

    def test_concurrent_callers_share_one_fetch(self, guest_catalog):
        """Callers arriving during a load wait for it instead of loading again."""
        cache = CatalogCache()
        calls = []
        loading = threading.Event()
        release = threading.Event()

        def loader():
            calls.append(1)
            loading.set()
            release.wait(5)
            return guest_catalog

        results = []
        threads = [
            threading.Thread(target=lambda: results.append(cache.get(46, "s", loader)))
            for _ in range(4)
        ]
        threads[0].start()
        loading.wait(5)
        for thread in threads[1:]:
            thread.start()
        release.set()
        for thread in threads:
            thread.join(5)

        assert len(calls) == 1
        assert len(results) == 4
        assert all(result is results[0] for result in results)

    def test_failed_load_is_not_cached(self, guest_catalog):
        """A failing loader leaves the cache empty for the next caller."""
        cache = CatalogCache()

        def failing():
            raise RuntimeError("catalog unavailable")

        with pytest.raises(RuntimeError):
            cache.get(46, "s", failing)
        assert not cache.is_cached(46, "s")

        index = cache.get(46, "s", lambda: guest_catalog)
        assert len(index) == len(guest_catalog)

    def test_invalidate_family(self, guest_catalog):
        """Invalidation drops only the requested family."""
        cache = CatalogCache()
        cache.get(46, "s", lambda: guest_catalog)
        cache.get(50, "s", lambda: guest_catalog)

        assert cache.invalidate(46) == 1
        assert not cache.is_cached(46, "s")
        assert cache.is_cached(50, "s")

    def test_invalidate_all(self, guest_catalog):
        cache = CatalogCache()
        cache.get(46, "s", lambda: guest_catalog)
        cache.get(50, "s", lambda: guest_catalog)
        assert cache.invalidate() == 2
        assert cache.invalidate() == 0
