"""
Remote-Verified Price Selection
===============================

Picks the first candidate price combination the remote order
verification accepts. Candidates are tried in order and verification
stops at the first success.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ..catalog.index import CatalogIndex
from ..catalog.prices import split_combinations
from ..errors import CombinationExhausted
from ..providers.base import Order, ProviderInterface, RemoteRejection
from .orders import OrderDefaults, OrderTemplate, build_order

logger = logging.getLogger(__name__)


class PriceCombinationSelector:
    """
    Verifies candidate price combinations against the remote service.

    Usable on its own for pre-flight validation without provisioning.
    """

    def __init__(
        self,
        remote: ProviderInterface,
        defaults: OrderDefaults,
        catalog: Optional[Callable[[], CatalogIndex]] = None,
    ):
        """
        Args:
            remote: Provider offering order verification
            defaults: Family order settings
            catalog: Supplies the family catalog when extras are given by item id
        """
        self.remote = remote
        self.defaults = defaults
        self.catalog = catalog

    def select(self, combinations: str, template: OrderTemplate) -> str:
        """
        Return the first combination the remote service accepts.

        Args:
            combinations: ``;``-separated candidate combinations
            template: The order to verify each candidate with

        Returns:
            The accepted combination

        Raises:
            CombinationExhausted: If every candidate was rejected
        """
        combination, _ = self.select_order(combinations, template)
        return combination

    def select_order(self, combinations: str, template: OrderTemplate) -> Tuple[str, Order]:
        """Like ``select``, also returning the verified order."""
        candidates = split_combinations(combinations)
        rejections: List[Tuple[str, str]] = []
        catalog = self.catalog() if self.catalog and self.defaults.extra_item_ids else None

        for candidate in candidates:
            order = build_order(template, self.defaults, candidate, catalog)
            try:
                self.remote.verify_order(order)
            except RemoteRejection as e:
                logger.info(
                    f"Failed verifying hardware price ID {candidate}: {e.message}. "
                    f"Retrying with alternative price id.",
                    extra={"family_id": self.defaults.family_id},
                )
                rejections.append((candidate, e.message))
                continue

            logger.info(
                f"Verified price combination {candidate} for {template.hostname}",
                extra={"family_id": self.defaults.family_id},
            )
            return candidate, order

        raise CombinationExhausted(candidates, rejections)
