"""
Server Family Registry
======================

Maps a server family (package) id to the bundle of enumerator, price
selector and state machine that serves it. Built once at startup from
the family specs; looking up an unregistered id is a configuration
error.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..catalog.cache import CatalogCache
from ..catalog.index import CatalogIndex
from ..catalog.profiles import HardwareProfileEnumerator
from ..config import ProvisionerConfig
from ..errors import ConfigurationError
from ..provisioning.polling import Clock, Sleep
from ..provisioning.selector import PriceCombinationSelector
from ..provisioning.state_machine import ProvisioningStateMachine
from ..provisioning.transactions import TransactionTracker
from ..providers.base import ProviderInterface
from .specs import FamilySpec, build_family_specs

logger = logging.getLogger(__name__)


@dataclass
class FamilyStrategy:
    """The components serving one server family."""
    spec: FamilySpec
    catalog: Callable[[], CatalogIndex]
    enumerator: HardwareProfileEnumerator
    selector: PriceCombinationSelector
    state_machine: ProvisioningStateMachine
    catalog_cache: Optional[CatalogCache] = None

    @property
    def family_id(self) -> int:
        return self.spec.family_id


class FamilyRegistry:
    """
    Registry of server family strategies keyed by family id.

    All registered strategies memoize their catalogs in one cache, so
    refreshing it refreshes every family. A registry created without a
    cache adopts the cache of the first strategy registered.
    """

    def __init__(self, catalog_cache: Optional[CatalogCache] = None):
        self._strategies: Dict[int, FamilyStrategy] = {}
        self.catalog_cache = catalog_cache

    def __contains__(self, family_id: int) -> bool:
        return family_id in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)

    def register(self, strategy: FamilyStrategy) -> None:
        """
        Register a family strategy.

        Raises:
            ConfigurationError: If the family id is already registered, or the
                strategy memoizes its catalog in a different cache
        """
        if strategy.family_id in self._strategies:
            raise ConfigurationError(f"Server family already registered: {strategy.family_id}")
        if self.catalog_cache is None:
            self.catalog_cache = strategy.catalog_cache
        elif strategy.catalog_cache is not self.catalog_cache:
            raise ConfigurationError(
                f"Server family {strategy.family_id} uses a different catalog cache than the registry"
            )
        self._strategies[strategy.family_id] = strategy

    def get(self, family_id: int) -> FamilyStrategy:
        """
        Get the strategy for a family.

        Raises:
            ConfigurationError: If the family id is not registered
        """
        strategy = self._strategies.get(family_id)
        if strategy is None:
            raise ConfigurationError(
                f"Cannot find implementation for package id {family_id}. "
                f"Available: {sorted(self._strategies)}"
            )
        return strategy

    def list_families(self) -> List[Dict[str, object]]:
        """
        List all registered families.

        Returns:
            List of family metadata dicts
        """
        return [
            {
                "id": strategy.spec.family_id,
                "name": strategy.spec.name,
                "kind": strategy.spec.kind.value,
                "supports_suspend": strategy.spec.supports_suspend,
            }
            for strategy in self._strategies.values()
        ]


def build_strategy(
    spec: FamilySpec,
    remote: ProviderInterface,
    catalog_cache: CatalogCache,
    session: str = "",
    power_off_before_cancel: bool = False,
    clock: Clock = time.monotonic,
    sleep: Sleep = time.sleep,
    tracker: Optional[TransactionTracker] = None,
) -> FamilyStrategy:
    """Wire one family's components around a shared remote and catalog cache."""

    def catalog() -> CatalogIndex:
        return catalog_cache.get(
            spec.family_id, session, lambda: remote.list_catalog_items(spec.family_id)
        )

    defaults = spec.order_defaults
    return FamilyStrategy(
        spec=spec,
        catalog=catalog,
        enumerator=HardwareProfileEnumerator(spec.family_id, spec.rules, catalog),
        selector=PriceCombinationSelector(remote, defaults, catalog),
        state_machine=ProvisioningStateMachine(
            remote,
            defaults,
            spec.policies,
            requires_order_approval=spec.requires_order_approval,
            supports_suspend=spec.supports_suspend,
            power_off_before_cancel=power_off_before_cancel and spec.supports_power_off,
            clock=clock,
            sleep=sleep,
            tracker=tracker,
            catalog=catalog,
        ),
        catalog_cache=catalog_cache,
    )


def build_registry(
    remote: ProviderInterface,
    config: Optional[ProvisionerConfig] = None,
    catalog_cache: Optional[CatalogCache] = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = time.sleep,
) -> FamilyRegistry:
    """
    Build the registry of every supported family.

    Families of the same node kind share one transaction tracker.

    Raises:
        ConfigurationError: If the configuration is malformed
    """
    config = config or ProvisionerConfig()
    catalog_cache = catalog_cache if catalog_cache is not None else CatalogCache()
    trackers: Dict[object, TransactionTracker] = {}

    registry = FamilyRegistry(catalog_cache)
    for spec in build_family_specs(config):
        registry.register(build_strategy(
            spec,
            remote,
            catalog_cache,
            session=config.session,
            power_off_before_cancel=config.power_off_before_cancel,
            clock=clock,
            sleep=sleep,
            tracker=trackers.setdefault(spec.kind, TransactionTracker()),
        ))

    logger.debug(f"Registered server families: {[f['id'] for f in registry.list_families()]}")
    return registry
