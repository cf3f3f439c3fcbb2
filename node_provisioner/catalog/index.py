"""
Catalog Index
=============

Indexes a package's item list by category code and answers the
category and regex lookups used by hardware profile enumeration.
Pure data structure, no I/O.
"""

import re
from typing import Dict, Iterable, Iterator, List, Optional, Pattern, TypeVar, Union

from ..errors import ConfigurationError
from .base import CatalogItem

T = TypeVar("T")

PatternLike = Union[str, Pattern]


def compile_pattern(pattern: PatternLike) -> Pattern:
    """
    Compile a catalog lookup pattern.

    Args:
        pattern: Regex string or an already compiled pattern

    Returns:
        Compiled pattern

    Raises:
        ConfigurationError: If the regex is malformed
    """
    if isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except (re.error, TypeError) as e:
        raise ConfigurationError(f"Invalid catalog pattern {pattern!r}: {e}")


def first_or_default(items: Iterable[T], default: Optional[T] = None) -> Optional[T]:
    """Return the first element of ``items``, or ``default`` if there is none."""
    return next(iter(items), default)


class CatalogIndex:
    """
    Category index over one package's catalog items.

    Items keep catalog order. An item listed twice in the source catalog
    is indexed once.
    """

    def __init__(self, items: Iterable[CatalogItem]):
        if items is None:
            raise ValueError("catalog items are required to build an index")

        unique: Dict[int, CatalogItem] = {}
        for item in items:
            unique.setdefault(item.id, item)
        self._items: List[CatalogItem] = list(unique.values())

        self._by_category: Dict[str, List[CatalogItem]] = {}
        for item in self._items:
            for code in dict.fromkeys(item.categories):
                self._by_category.setdefault(code, []).append(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CatalogItem]:
        return iter(self._items)

    @property
    def items(self) -> List[CatalogItem]:
        return list(self._items)

    def items_by_category(self, code: str) -> List[CatalogItem]:
        """Items tagged with exactly the category ``code``."""
        return list(self._by_category.get(code, ()))

    def items_matching(self, pattern: PatternLike) -> List[CatalogItem]:
        """Items whose whole description matches ``pattern``."""
        regex = compile_pattern(pattern)
        return [item for item in self._items if regex.fullmatch(item.description or "")]

    def items_in_categories_matching(self, pattern: PatternLike) -> List[CatalogItem]:
        """Items carrying at least one category code that fully matches ``pattern``."""
        regex = compile_pattern(pattern)
        return [
            item for item in self._items
            if any(regex.fullmatch(code) for code in item.categories)
        ]

    def items_with_price_id(self, price_id: int) -> List[CatalogItem]:
        return [item for item in self._items if item.has_price_id(price_id)]

    def item_with_id(self, item_id: int) -> Optional[CatalogItem]:
        return first_or_default(item for item in self._items if item.id == item_id)
