"""
Node Provisioning Service
=========================

Caller-facing operations of the provisioner.

This is the glue that:
1. Dispatches a server family id to its strategy
2. Offers the family's hardware profiles from the memoized catalog
3. Expands a chosen profile into candidate price combinations
4. Verifies candidates until the remote service accepts one
5. Places the order and polls the node until it is usable
"""

import logging
import time
from typing import Dict, List, Optional

from .catalog.cache import CatalogCache
from .catalog.prices import all_price_combinations
from .catalog.profiles import HardwareProfile
from .config import ProvisionerConfig
from .errors import ConfigurationError
from .families.registry import FamilyRegistry, build_registry
from .provisioning.orders import OrderTemplate
from .provisioning.polling import Clock, Sleep
from .provisioning.state_machine import ProvisionResult
from .providers.base import NodeRecord, ProviderInterface
from .providers.softlayer import SoftLayerProvider

logger = logging.getLogger(__name__)


class NodeProvisioningService:
    """
    Provisions and decommissions nodes across all registered server families.

    Usage:
        service = NodeProvisioningService.from_config(ProvisionerConfig.from_env())

        profiles = service.list_hardware_profiles(46)
        result = service.provision_node(46, OrderTemplate(
            hostname="web-1",
            domain="example.com",
            hardware_id=profiles[0].id,
            location="3",
            image_price_id=1684,
        ))
    """

    def __init__(
        self,
        remote: ProviderInterface,
        config: Optional[ProvisionerConfig] = None,
        registry: Optional[FamilyRegistry] = None,
        catalog_cache: Optional[CatalogCache] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
    ):
        """
        Args:
            remote: Provider the families order from
            config: Provisioner configuration
            registry: Prebuilt family registry; built from ``config`` when omitted
            catalog_cache: Catalog memo; must be the registry's own when both are given
            clock: Monotonic clock used by polling
            sleep: Sleep used by polling

        Raises:
            ConfigurationError: If ``catalog_cache`` is not the cache ``registry`` uses
        """
        self.remote = remote
        self.config = config or ProvisionerConfig()
        if registry is None:
            registry = build_registry(remote, self.config, catalog_cache, clock=clock, sleep=sleep)
        elif catalog_cache is not None and registry.catalog_cache is not catalog_cache:
            raise ConfigurationError("catalog_cache must be the cache the registry memoizes catalogs in")
        self.registry = registry

    @property
    def catalog_cache(self) -> Optional[CatalogCache]:
        return self.registry.catalog_cache

    @classmethod
    def from_config(cls, config: ProvisionerConfig) -> "NodeProvisioningService":
        """
        Create a service talking to the SoftLayer REST API.

        Raises:
            ConfigurationError: If API credentials are missing
        """
        credentials = config.credentials
        if not credentials.is_configured:
            raise ConfigurationError("SOFTLAYER_USERNAME and SOFTLAYER_API_KEY are required")
        remote = SoftLayerProvider(
            credentials.username,
            credentials.api_key,
            endpoint=credentials.endpoint,
            timeout=credentials.timeout,
        )
        return cls(remote, config)

    # =========================================
    # CATALOG
    # =========================================

    def list_families(self) -> List[Dict[str, object]]:
        return self.registry.list_families()

    def list_hardware_profiles(self, family_id: int) -> List[HardwareProfile]:
        """
        Every hardware profile a family's catalog allows.

        Raises:
            ConfigurationError: If the family is unknown
        """
        strategy = self.registry.get(family_id)
        profiles = list(strategy.enumerator.profiles())
        logger.info(f"Family {family_id} offers {len(profiles)} hardware profile(s)",
                    extra={"family_id": family_id})
        return profiles

    def resolve_price_combinations(self, profile: HardwareProfile) -> str:
        """All candidate price combinations of a profile, ``;``-separated."""
        return all_price_combinations(profile.items)

    def select_verified_combination(
        self,
        family_id: int,
        candidates: str,
        template: OrderTemplate,
    ) -> str:
        """
        Verify candidates in order and return the first the remote accepts.

        Raises:
            ConfigurationError: If the family is unknown
            CombinationExhausted: If every candidate is rejected
        """
        return self.registry.get(family_id).selector.select(candidates, template)

    def refresh_catalog(self, family_id: Optional[int] = None) -> int:
        """Drop memoized catalogs so the next lookup fetches them again."""
        if family_id is not None:
            self.registry.get(family_id)
        if self.catalog_cache is None:
            return 0
        return self.catalog_cache.invalidate(family_id)

    # =========================================
    # NODES
    # =========================================

    def provision_node(self, family_id: int, template: OrderTemplate) -> ProvisionResult:
        """
        Provision a node and wait until it is usable.

        Args:
            family_id: Server family (package) id
            template: Node request; ``hardware_id`` holds the candidate combinations

        Returns:
            The node, its addresses and initial credentials

        Raises:
            ConfigurationError: If the family is unknown
            CombinationExhausted: If no candidate passes verification
            StageTimeout: If a provisioning stage does not complete in time
        """
        strategy = self.registry.get(family_id)
        logger.info(f"Provisioning {template.hostname} in family {family_id}",
                    extra={"family_id": family_id})
        combination = strategy.selector.select(template.hardware_id, template)
        return strategy.state_machine.provision(template, combination)

    def destroy_node(self, family_id: int, node_id: int) -> bool:
        """
        Cancel a node and wait for decommissioning to finish.

        Raises:
            ConfigurationError: If the family is unknown
            StageTimeout: If decommissioning does not complete in time
        """
        return self.registry.get(family_id).state_machine.destroy(node_id)

    def reboot_node(self, family_id: int, node_id: int) -> bool:
        return self.registry.get(family_id).state_machine.reboot(node_id)

    def suspend_node(self, family_id: int, node_id: int) -> bool:
        return self.registry.get(family_id).state_machine.suspend(node_id)

    def resume_node(self, family_id: int, node_id: int) -> bool:
        return self.registry.get(family_id).state_machine.resume(node_id)

    def list_nodes(self, family_id: int) -> List[NodeRecord]:
        """Nodes of the family's kind that still have a billing item."""
        strategy = self.registry.get(family_id)
        return [
            node for node in self.remote.list_nodes(strategy.spec.kind)
            if node.has_billing_item
        ]

    def get_node(self, family_id: int, node_id: int) -> Optional[NodeRecord]:
        strategy = self.registry.get(family_id)
        return self.remote.get_node(strategy.spec.kind, node_id)
