"""
Catalog Cache
=============

In-memory, single-flight memo of package catalogs.

Catalog retrieval is expensive and the catalog rarely changes, so each
(family, session) pair is fetched once. Concurrent callers asking for
the same key wait for the first fetch instead of issuing their own.
Entries are only dropped by an explicit ``invalidate``.
"""

import logging
import threading
from typing import Callable, Dict, Hashable, Iterable, Optional, Tuple

from .base import CatalogItem
from .index import CatalogIndex

logger = logging.getLogger(__name__)

CacheKey = Tuple[int, Hashable]


class CatalogCache:
    """Thread-safe, single-flight catalog memo keyed by family id and session."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, CatalogIndex] = {}
        self._loading: Dict[CacheKey, threading.Lock] = {}

    def get(
        self,
        family_id: int,
        session: Hashable,
        loader: Callable[[], Iterable[CatalogItem]],
    ) -> CatalogIndex:
        """
        Get the catalog index for a family, loading it on first use.

        Args:
            family_id: Server family (package) id
            session: Session identity, usually the API username
            loader: Fetches the raw catalog items when the key is not cached

        Returns:
            Catalog index for the family

        Raises:
            Whatever ``loader`` raises. A failed load caches nothing.
        """
        key = (family_id, session)
        with self._lock:
            index = self._entries.get(key)
            if index is not None:
                return index
            key_lock = self._loading.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                index = self._entries.get(key)
            if index is not None:
                return index

            logger.info(f"Loading catalog for family {family_id}", extra={"family_id": family_id})
            index = CatalogIndex(loader())
            logger.debug(f"Loaded {len(index)} catalog items for family {family_id}")

            with self._lock:
                self._entries[key] = index
            return index

    def is_cached(self, family_id: int, session: Hashable) -> bool:
        with self._lock:
            return (family_id, session) in self._entries

    def invalidate(self, family_id: Optional[int] = None) -> int:
        """
        Drop cached catalogs.

        Args:
            family_id: Only drop this family's entries; all entries when None

        Returns:
            Number of entries dropped
        """
        with self._lock:
            keys = [key for key in self._entries if family_id is None or key[0] == family_id]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.info(f"Invalidated {len(keys)} cached catalog(s)")
        return len(keys)
