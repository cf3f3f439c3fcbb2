"""
Tests for Price Combination Resolution
======================================

Tests single and multi-candidate hardware ids.
"""

import pytest

from node_provisioner.catalog.prices import (
    all_price_combinations,
    hardware_id,
    parse_price_ids,
    price_combinations,
    provider_hardware_id,
    split_combinations,
)
from node_provisioner.errors import CatalogResolutionError


@pytest.fixture
def repeated_items(item_factory):
    """Items with 3, 3 and 4 prices, the first one repeated at the end."""
    item1 = item_factory(11, [1, 2, 3])
    item2 = item_factory(12, [4, 5, 6])
    item3 = item_factory(13, [7, 8, 9, 10])
    return [item1, item2, item3, item_factory(11, [1, 2, 3])]


class TestHardwareIds:
    """Test single-template ids."""

    def test_hardware_id_uses_first_prices(self, repeated_items):
        assert hardware_id(repeated_items) == "1,4,7,1"

    def test_provider_hardware_id_uses_item_ids(self, repeated_items):
        assert provider_hardware_id(repeated_items) == "11,12,13,11"

    def test_hardware_id_requires_prices(self, item_factory):
        with pytest.raises(CatalogResolutionError):
            hardware_id([item_factory(1, [])])


class TestPriceCombinations:
    """Test the price combination expansion."""

    def test_thirty_six_combinations(self, repeated_items):
        """3 x 3 x 4 price alternatives give 36 combinations."""
        combinations = price_combinations(repeated_items)
        assert len(combinations) == 36
        assert len(set(combinations)) == 36

    def test_repeated_item_echoes_its_price(self, repeated_items):
        """The repeated item takes the same price at both positions."""
        for combination in price_combinations(repeated_items):
            tokens = combination.split(",")
            assert len(tokens) == 4
            assert tokens[0] == tokens[3]
            assert tokens[0] in ("1", "2", "3")
            assert tokens[1] in ("4", "5", "6")
            assert tokens[2] in ("7", "8", "9", "10")

    def test_discovery_order(self, repeated_items):
        """The first item varies slowest, the last fastest."""
        combinations = price_combinations(repeated_items)
        assert combinations[:2] == ["1,4,7,1", "1,4,8,1"]
        assert combinations[-1] == "3,6,10,3"

    def test_joined_with_semicolons(self, repeated_items):
        joined = all_price_combinations(repeated_items)
        assert joined.count(";") == 35
        assert joined.startswith("1,4,7,1;1,4,8,1;")

    def test_deterministic(self, repeated_items):
        """The same items always give the same string."""
        assert all_price_combinations(repeated_items) == all_price_combinations(repeated_items)

    def test_single_price_items(self, guest_catalog):
        """Items with one price each give exactly the price template."""
        items = guest_catalog[:4]
        assert all_price_combinations(items) == "123,456,789,272"

    def test_count_is_product_of_alternatives(self, item_factory):
        items = [item_factory(1, [10, 11]), item_factory(2, [20, 21, 22])]
        assert len(price_combinations(items)) == 6

    def test_adjacent_repeats(self, item_factory):
        """Back-to-back occurrences of one item both take its price."""
        disk = item_factory(5, [50, 51])
        assert price_combinations([disk, disk]) == ["50,50", "51,51"]

    def test_price_id_equal_to_item_id(self, item_factory):
        """A price id that equals another item's id is not substituted again."""
        items = [item_factory(11, [12]), item_factory(12, [5])]
        assert all_price_combinations(items) == "12,5"

    def test_item_without_prices(self, item_factory):
        with pytest.raises(CatalogResolutionError):
            price_combinations([item_factory(1, [10]), item_factory(2, [])])

    def test_no_items(self):
        """An empty profile has no candidates, not one empty candidate."""
        assert price_combinations([]) == []
        assert all_price_combinations([]) == ""


class TestParsing:
    """Test combination string helpers."""

    def test_split_combinations(self):
        assert split_combinations("1,2;3,4") == ["1,2", "3,4"]
        assert split_combinations("1,2") == ["1,2"]
        assert split_combinations("") == []

    def test_parse_price_ids(self):
        assert parse_price_ids("123,456,789") == [123, 456, 789]
