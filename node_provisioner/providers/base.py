"""
Remote Provider Interface
=========================

Records exchanged with the infrastructure provider, the abstract
interface the provisioning core consumes, and the provider error
hierarchy.

The core never talks HTTP itself. Everything it needs from the remote
side goes through ``ProviderInterface``, which keeps the catalog and
state machine testable with plain mocks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..catalog.base import CatalogItem


BILLING_ORDER_APPROVED = "APPROVED"
POWER_STATE_HALTED = "HALTED"


class NodeKind(Enum):
    """Remote resource type behind a server family."""
    VIRTUAL_GUEST = "virtual_guest"
    HARDWARE_SERVER = "hardware_server"


@dataclass
class Credentials:
    username: str
    password: str


@dataclass
class NodeRecord:
    """A provisioned node as reported by the remote inventory."""
    id: int
    hostname: str
    domain: str = ""
    primary_ip: Optional[str] = None
    backend_ip: Optional[str] = None
    billing_item_id: Optional[int] = None
    passwords: List[Credentials] = field(default_factory=list)
    datacenter: Optional[str] = None
    private_network_only: bool = False
    power_state: Optional[str] = None

    @property
    def fqdn(self) -> str:
        return f"{self.hostname}.{self.domain}" if self.domain else self.hostname

    @property
    def has_billing_item(self) -> bool:
        return self.billing_item_id is not None


@dataclass
class Transaction:
    """A unit of backend work running against a node."""
    name: str
    elapsed_seconds: Optional[int] = None
    average_duration: Optional[float] = None  # minutes


@dataclass
class NodeDescriptor:
    """Target of an order: a new hostname/domain, or an existing node id being resized."""
    hostname: str = ""
    domain: str = ""
    id: Optional[int] = None


@dataclass
class Order:
    """A product order, used both for verification and for placement."""
    family_id: int
    location: Optional[str]
    prices: List[int]
    nodes: List[NodeDescriptor]
    kind: NodeKind = NodeKind.VIRTUAL_GUEST
    quantity: int = 1
    use_hourly_pricing: bool = False
    image_template_id: Optional[int] = None
    image_template_global_identifier: Optional[str] = None
    provision_scripts: List[str] = field(default_factory=list)


@dataclass
class OrderReceipt:
    """Result of placing an order. ``nodes`` lists any nodes created immediately."""
    order_id: Optional[int] = None
    nodes: List[NodeRecord] = field(default_factory=list)


# =========================================
# ERRORS
# =========================================

class ProviderError(Exception):
    """Base exception for provider errors."""
    def __init__(self, provider: str, message: str, details: Optional[Dict] = None):
        self.provider = provider
        self.message = message
        self.details = details or {}
        super().__init__(f"[{provider}] {message}")


class ProviderAuthError(ProviderError):
    """Authentication/authorization error."""
    pass


class ProviderQuotaError(ProviderError):
    """Quota/limit exceeded error."""
    pass


class ProviderResourceError(ProviderError):
    """Resource not found or unavailable error."""
    pass


class RemoteRejection(ProviderError):
    """The remote service refused an order for a business reason."""
    pass


# =========================================
# INTERFACE
# =========================================

class ProviderInterface(ABC):
    """
    Abstract interface to the infrastructure provider.

    Implementations are expected to be thread-safe; the provisioning core
    may poll several nodes concurrently through one instance.
    """

    PROVIDER_ID: str = "abstract"
    PROVIDER_NAME: str = "Abstract Provider"

    @abstractmethod
    def list_catalog_items(self, family_id: int) -> List[CatalogItem]:
        """
        Fetch the full item catalog of a package.

        Args:
            family_id: Server family (package) id

        Returns:
            Catalog items with their categories and prices
        """
        pass

    @abstractmethod
    def verify_order(self, order: Order) -> None:
        """
        Dry-run an order.

        Raises:
            RemoteRejection: If the remote service would refuse the order
        """
        pass

    @abstractmethod
    def place_order(self, order: Order) -> Optional[OrderReceipt]:
        """
        Place a real order.

        Returns:
            Order receipt, or None when the remote returned none

        Raises:
            RemoteRejection: If the remote service refused the order
        """
        pass

    @abstractmethod
    def list_nodes(self, kind: NodeKind) -> List[NodeRecord]:
        """List the account's nodes of one kind."""
        pass

    @abstractmethod
    def get_node(self, kind: NodeKind, node_id: int) -> Optional[NodeRecord]:
        """
        Fetch one node.

        Returns:
            Node record or None if not found
        """
        pass

    @abstractmethod
    def get_active_transaction(self, kind: NodeKind, node_id: int) -> Optional[Transaction]:
        """
        Get the transaction currently running against a node.

        Returns:
            Active transaction or None when the node is idle
        """
        pass

    @abstractmethod
    def cancel_billing_item(self, billing_item_id: int) -> bool:
        """Cancel a billing item, which starts decommissioning its node."""
        pass

    @abstractmethod
    def get_billing_order_status(self, order_id: int) -> Optional[str]:
        """Billing status of an order, e.g. ``APPROVED`` or ``PENDING_APPROVAL``."""
        pass

    @abstractmethod
    def reboot_node(self, kind: NodeKind, node_id: int) -> bool:
        """Hard reboot a node."""
        pass

    @abstractmethod
    def power_off_node(self, kind: NodeKind, node_id: int) -> bool:
        """Power a node off."""
        pass

    @abstractmethod
    def pause_node(self, node_id: int) -> bool:
        """Pause a virtual guest."""
        pass

    @abstractmethod
    def resume_node(self, node_id: int) -> bool:
        """Resume a paused virtual guest."""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} ({self.PROVIDER_ID})>"
