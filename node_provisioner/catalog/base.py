"""
Catalog Data Model
==================

Immutable records for the provider's product catalog.

A package catalog is a flat list of purchasable items. Each item is
tagged with one or more category codes (``ram``, ``guest_disk0``,
``port_speed`` ...) and is sold under one or more interchangeable
price ids.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..errors import CatalogResolutionError


@dataclass(frozen=True)
class PriceAlternative:
    """One billable identifier for a catalog item."""
    id: int


@dataclass(frozen=True)
class CatalogItem:
    """
    A purchasable unit in a package catalog.

    Items compare and hash by id only, so the same item loaded twice is
    treated as one item.
    """
    id: int
    description: str = field(default="", compare=False)
    capacity: Optional[float] = field(default=None, compare=False)
    units: Optional[str] = field(default=None, compare=False)
    categories: Tuple[str, ...] = field(default=(), compare=False)
    prices: Tuple[PriceAlternative, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "prices", tuple(self.prices))

    @property
    def price_ids(self) -> Tuple[int, ...]:
        return tuple(price.id for price in self.prices)

    @property
    def first_price(self) -> PriceAlternative:
        """
        First listed price of the item.

        Raises:
            CatalogResolutionError: If the item carries no price
        """
        if not self.prices:
            raise CatalogResolutionError(f"Item {self.id} ({self.description}) has no prices")
        return self.prices[0]

    def has_category(self, code: str) -> bool:
        return code in self.categories

    def has_price_id(self, price_id: int) -> bool:
        return price_id in self.price_ids
