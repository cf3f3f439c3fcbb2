"""
SoftLayer Provider Adapter
==========================

IBM Cloud Classic (SoftLayer) integration using direct REST API calls
via httpx.

Product orders are posted as ``SoftLayer_Container_Product_Order``
containers; nodes, transactions and billing items are read back through
object masks so each call returns everything the state machine needs.

API Docs: https://sldn.softlayer.com/reference/softlayerapi/
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..catalog.base import CatalogItem, PriceAlternative
from .base import (
    Credentials,
    NodeKind,
    NodeRecord,
    Order,
    OrderReceipt,
    ProviderAuthError,
    ProviderError,
    ProviderInterface,
    ProviderQuotaError,
    ProviderResourceError,
    RemoteRejection,
    Transaction,
)

logger = logging.getLogger(__name__)


DEFAULT_ENDPOINT = "https://api.softlayer.com/rest/v3"

ORDER_COMPLEX_TYPE = "SoftLayer_Container_Product_Order"

CATALOG_MASK = (
    "mask[id,description,capacity,units,categories[categoryCode],"
    "prices[id,categories[categoryCode]]]"
)

NODE_MASK = (
    "mask[id,hostname,domain,primaryIpAddress,primaryBackendIpAddress,"
    "privateNetworkOnlyFlag,billingItem[id],datacenter[name],powerState[keyName],"
    "operatingSystem[passwords[username,password]]]"
)

NODE_SERVICES = {
    NodeKind.VIRTUAL_GUEST: "SoftLayer_Virtual_Guest",
    NodeKind.HARDWARE_SERVER: "SoftLayer_Hardware_Server",
}

ACCOUNT_LISTINGS = {
    NodeKind.VIRTUAL_GUEST: "/SoftLayer_Account/getVirtualGuests.json",
    NodeKind.HARDWARE_SERVER: "/SoftLayer_Account/getHardware.json",
}

ORDER_NODE_KEYS = {
    NodeKind.VIRTUAL_GUEST: "virtualGuests",
    NodeKind.HARDWARE_SERVER: "hardware",
}


# =========================================
# WIRE FORMAT
# =========================================

def order_to_payload(order: Order) -> Dict[str, Any]:
    """Build the ``verifyOrder``/``placeOrder`` request body for an order."""
    container: Dict[str, Any] = {
        "complexType": ORDER_COMPLEX_TYPE,
        "packageId": order.family_id,
        "location": order.location,
        "quantity": order.quantity,
        "useHourlyPricing": order.use_hourly_pricing,
        "prices": [{"id": price_id} for price_id in order.prices],
    }

    nodes = []
    for node in order.nodes:
        if node.id is not None:
            nodes.append({"id": node.id})
        else:
            nodes.append({"hostname": node.hostname, "domain": node.domain})
    container[ORDER_NODE_KEYS[order.kind]] = nodes

    if order.image_template_id is not None:
        container["imageTemplateId"] = order.image_template_id
    if order.image_template_global_identifier:
        container["imageTemplateGlobalIdentifier"] = order.image_template_global_identifier
    if order.provision_scripts:
        container["provisionScripts"] = list(order.provision_scripts)

    return {"parameters": [container]}


def item_from_json(data: Dict[str, Any]) -> CatalogItem:
    """
    Parse a ``SoftLayer_Product_Item``.

    Items listed without categories take the categories of their prices.
    """
    prices = data.get("prices") or []
    categories = [c.get("categoryCode") for c in data.get("categories") or [] if c.get("categoryCode")]
    if not categories:
        for price in prices:
            for category in price.get("categories") or []:
                code = category.get("categoryCode")
                if code and code not in categories:
                    categories.append(code)

    capacity = data.get("capacity")
    return CatalogItem(
        id=int(data["id"]),
        description=data.get("description") or "",
        capacity=float(capacity) if capacity not in (None, "") else None,
        units=data.get("units"),
        categories=tuple(categories),
        prices=tuple(PriceAlternative(int(price["id"])) for price in prices),
    )


def node_from_json(data: Dict[str, Any]) -> NodeRecord:
    """Parse a ``SoftLayer_Virtual_Guest`` or ``SoftLayer_Hardware_Server``."""
    operating_system = data.get("operatingSystem") or {}
    passwords = [
        Credentials(username=p.get("username", ""), password=p.get("password", ""))
        for p in operating_system.get("passwords") or []
    ]
    billing_item = data.get("billingItem") or {}
    datacenter = data.get("datacenter") or {}
    power_state = data.get("powerState") or {}

    return NodeRecord(
        id=int(data["id"]),
        hostname=data.get("hostname", ""),
        domain=data.get("domain", ""),
        primary_ip=data.get("primaryIpAddress"),
        backend_ip=data.get("primaryBackendIpAddress"),
        billing_item_id=billing_item.get("id"),
        passwords=passwords,
        datacenter=datacenter.get("name"),
        private_network_only=bool(data.get("privateNetworkOnlyFlag", False)),
        power_state=power_state.get("keyName"),
    )


def transaction_from_json(data: Dict[str, Any]) -> Transaction:
    status = data.get("transactionStatus") or {}
    return Transaction(
        name=status.get("name") or data.get("name") or "",
        elapsed_seconds=data.get("elapsedSeconds"),
        average_duration=status.get("averageDuration"),
    )


# =========================================
# PROVIDER
# =========================================

class SoftLayerProvider(ProviderInterface):
    """
    SoftLayer REST adapter.

    Usage:
        provider = SoftLayerProvider("user", "api-key")
        items = provider.list_catalog_items(46)
    """

    PROVIDER_ID = "softlayer"
    PROVIDER_NAME = "IBM Cloud Classic (SoftLayer)"

    def __init__(
        self,
        username: str,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize SoftLayer provider.

        Args:
            username: API username
            api_key: API key
            endpoint: REST endpoint base URL
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.username = username
        self.client = httpx.Client(
            base_url=endpoint.rstrip("/"),
            auth=(username, api_key),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None
    ) -> Any:
        """Make an authenticated API request."""
        try:
            response = self.client.request(
                method=method,
                url=endpoint,
                json=data,
                params=params,
            )

            if response.status_code == 401:
                raise ProviderAuthError(self.PROVIDER_ID, "Authentication failed")

            if response.status_code == 404:
                raise ProviderResourceError(self.PROVIDER_ID, f"Resource not found: {endpoint}")

            if response.status_code == 429:
                raise ProviderQuotaError(self.PROVIDER_ID, "Rate limit exceeded")

            response.raise_for_status()

            if response.content:
                return response.json()
            return None

        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code}"
            error_data: Dict[str, Any] = {}
            try:
                error_data = e.response.json()
            except ValueError:
                error_data = {}
            if isinstance(error_data, dict) and error_data.get("error"):
                raise RemoteRejection(
                    self.PROVIDER_ID,
                    str(error_data["error"]),
                    details={"code": error_data.get("code"), "status": e.response.status_code},
                )
            raise ProviderError(self.PROVIDER_ID, f"API error: {error_msg}")
        except httpx.HTTPError as e:
            raise ProviderError(self.PROVIDER_ID, f"Request failed: {e}")
        except ValueError as e:
            raise ProviderError(self.PROVIDER_ID, f"Invalid response from {endpoint}: {e}")

    # =========================================
    # CATALOG & ORDERS
    # =========================================

    def list_catalog_items(self, family_id: int) -> List[CatalogItem]:
        response = self._make_request(
            "GET",
            f"/SoftLayer_Product_Package/{family_id}/getItems.json",
            params={"objectMask": CATALOG_MASK},
        )
        return [item_from_json(item) for item in response or []]

    def verify_order(self, order: Order) -> None:
        self._make_request(
            "POST",
            "/SoftLayer_Product_Order/verifyOrder.json",
            data=order_to_payload(order),
        )

    def place_order(self, order: Order) -> Optional[OrderReceipt]:
        kind = order.kind
        response = self._make_request(
            "POST",
            "/SoftLayer_Product_Order/placeOrder.json",
            data=order_to_payload(order),
        )
        if not response:
            return None

        details = response.get("orderDetails") or {}
        nodes = [
            node_from_json(node)
            for node in details.get(ORDER_NODE_KEYS[kind]) or []
            if node.get("id") is not None
        ]
        return OrderReceipt(order_id=response.get("orderId"), nodes=nodes)

    def get_billing_order_status(self, order_id: int) -> Optional[str]:
        response = self._make_request("GET", f"/SoftLayer_Billing_Order/{order_id}.json")
        return (response or {}).get("status")

    def cancel_billing_item(self, billing_item_id: int) -> bool:
        response = self._make_request(
            "GET", f"/SoftLayer_Billing_Item/{billing_item_id}/cancelService.json"
        )
        return bool(response)

    # =========================================
    # NODES
    # =========================================

    def list_nodes(self, kind: NodeKind) -> List[NodeRecord]:
        response = self._make_request(
            "GET", ACCOUNT_LISTINGS[kind], params={"objectMask": NODE_MASK}
        )
        return [node_from_json(node) for node in response or []]

    def get_node(self, kind: NodeKind, node_id: int) -> Optional[NodeRecord]:
        try:
            response = self._make_request(
                "GET",
                f"/{NODE_SERVICES[kind]}/{node_id}.json",
                params={"objectMask": NODE_MASK},
            )
        except ProviderResourceError:
            return None
        return node_from_json(response) if response else None

    def get_active_transaction(self, kind: NodeKind, node_id: int) -> Optional[Transaction]:
        response = self._make_request(
            "GET", f"/{NODE_SERVICES[kind]}/{node_id}/getActiveTransaction.json"
        )
        if not response:
            return None
        return transaction_from_json(response)

    def reboot_node(self, kind: NodeKind, node_id: int) -> bool:
        return bool(self._make_request("GET", f"/{NODE_SERVICES[kind]}/{node_id}/rebootHard.json"))

    def power_off_node(self, kind: NodeKind, node_id: int) -> bool:
        return bool(self._make_request("GET", f"/{NODE_SERVICES[kind]}/{node_id}/powerOff.json"))

    def pause_node(self, node_id: int) -> bool:
        return bool(self._make_request("GET", f"/SoftLayer_Virtual_Guest/{node_id}/pause.json"))

    def resume_node(self, node_id: int) -> bool:
        return bool(self._make_request("GET", f"/SoftLayer_Virtual_Guest/{node_id}/resume.json"))

    # =========================================
    # LIFECYCLE
    # =========================================

    def close(self) -> None:
        self.client.close()

    def __del__(self):
        """Cleanup HTTP client on deletion."""
        if hasattr(self, 'client'):
            self.client.close()

