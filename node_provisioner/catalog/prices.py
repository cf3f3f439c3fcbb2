"""
Price Combination Resolution
============================

Turns the items of a hardware profile into price-id strings the
ordering API accepts.

An item may be sold under several interchangeable price ids. The
multi-candidate hardware id lists every legal assignment of one price
per item as comma-separated price ids, and joins the assignments with
``;``. Items that occur more than once in a profile take the same price
at every position.

Example, items 11 (prices 1, 2, 3), 12 (4, 5, 6), 13 (7, 8, 9, 10)
ordered as ``[11, 12, 13, 11]``::

    1,4,7,1;1,4,8,1;1,4,9,1;1,4,10,1;1,5,7,1;...;3,6,10,3

36 combinations, one for each of 3 x 3 x 4 price assignments.
"""

from typing import Dict, List, Sequence, Tuple

from ..errors import CatalogResolutionError
from .base import CatalogItem

COMBINATION_SEPARATOR = ";"
PRICE_SEPARATOR = ","


def hardware_id(items: Sequence[CatalogItem]) -> str:
    """
    Single price-id template built from the first price of each item.

    Raises:
        CatalogResolutionError: If an item carries no price
    """
    return PRICE_SEPARATOR.join(str(item.first_price.id) for item in items)


def provider_hardware_id(items: Sequence[CatalogItem]) -> str:
    """Comma-joined item ids, stable across calls for the same items."""
    return PRICE_SEPARATOR.join(str(item.id) for item in items)


def _expand(
    price_sets: List[Tuple[str, ...]],
    depth: int,
    prefix: List[str],
    found: Dict[Tuple[str, ...], None],
) -> None:
    if depth == len(price_sets):
        found[tuple(prefix)] = None
        return
    for price_id in price_sets[depth]:
        prefix.append(price_id)
        _expand(price_sets, depth + 1, prefix, found)
        prefix.pop()


def _apply_to_template(
    items: Sequence[CatalogItem],
    distinct: Sequence[CatalogItem],
    combination: Tuple[str, ...],
) -> str:
    """
    Substitute chosen price ids into the item-id template.

    Each template slot is written at most once, so a price id that
    happens to equal another item's id is never substituted again.
    """
    template = provider_hardware_id(items).split(PRICE_SEPARATOR) if items else []
    written = [False] * len(template)

    for item, price_id in zip(distinct, combination):
        for position, slot_item in enumerate(items):
            if not written[position] and slot_item == item:
                template[position] = price_id
                written[position] = True

    return PRICE_SEPARATOR.join(template)


def price_combinations(items: Sequence[CatalogItem]) -> List[str]:
    """
    Every legal price assignment for ``items``, in discovery order.

    Args:
        items: Profile items in profile order; repeated items are allowed

    Returns:
        Comma-separated price-id strings without duplicates

    Raises:
        CatalogResolutionError: If an item carries no price
    """
    if not items:
        return []
    distinct = list(dict.fromkeys(items))
    for item in distinct:
        if not item.prices:
            raise CatalogResolutionError(f"Item {item.id} ({item.description}) has no prices")

    price_sets = [tuple(str(price_id) for price_id in item.price_ids) for item in distinct]

    found: Dict[Tuple[str, ...], None] = {}
    _expand(price_sets, 0, [], found)

    canonical: Dict[str, None] = {}
    for combination in found:
        canonical[_apply_to_template(items, distinct, combination)] = None
    return list(canonical)


def all_price_combinations(items: Sequence[CatalogItem]) -> str:
    """Multi-candidate hardware id: every price combination joined with ``;``."""
    return COMBINATION_SEPARATOR.join(price_combinations(items))


def split_combinations(combinations: str) -> List[str]:
    """Split a multi-candidate hardware id into its candidates."""
    if not combinations:
        return []
    return [candidate for candidate in combinations.split(COMBINATION_SEPARATOR) if candidate]


def parse_price_ids(combination: str) -> List[int]:
    """Price ids of one candidate combination."""
    return [int(token) for token in combination.split(PRICE_SEPARATOR) if token.strip()]
