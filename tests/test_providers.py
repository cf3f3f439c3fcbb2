"""
Tests for the SoftLayer Provider
================================

Tests wire parsing and error mapping against a mocked HTTP transport.
"""

import json

import httpx
import pytest

from node_provisioner.providers.base import (
    NodeDescriptor,
    NodeKind,
    Order,
    ProviderAuthError,
    ProviderError,
    ProviderQuotaError,
    RemoteRejection,
)
from node_provisioner.providers.softlayer import (
    SoftLayerProvider,
    item_from_json,
    node_from_json,
    order_to_payload,
)


def make_provider(handler):
    """Provider whose HTTP calls are answered by ``handler``."""
    return SoftLayerProvider("tester", "key", transport=httpx.MockTransport(handler))


@pytest.fixture
def guest_order():
    return Order(
        family_id=46,
        location="3",
        prices=[1684, 123, 456],
        nodes=[NodeDescriptor(hostname="web-1", domain="example.com")],
    )


class TestWireFormat:
    """Test JSON parsing and payload building."""

    def test_item_inherits_price_categories(self):
        """Items listed without categories take them from their prices."""
        item = item_from_json({
            "id": 1,
            "description": "2 x 2.0 GHz Cores",
            "capacity": "2",
            "prices": [
                {"id": 123, "categories": [{"categoryCode": "guest_core"}]},
                {"id": 124, "categories": [{"categoryCode": "guest_core"}]},
            ],
        })
        assert item.categories == ("guest_core",)
        assert item.price_ids == (123, 124)
        assert item.capacity == 2.0

    def test_item_own_categories_win(self):
        item = item_from_json({
            "id": 2,
            "categories": [{"categoryCode": "ram"}],
            "prices": [{"id": 456, "categories": [{"categoryCode": "other"}]}],
        })
        assert item.categories == ("ram",)
        assert item.capacity is None

    def test_node_from_json(self):
        node = node_from_json({
            "id": 1001,
            "hostname": "web-1",
            "domain": "example.com",
            "primaryIpAddress": "1.2.3.4",
            "primaryBackendIpAddress": "10.0.0.4",
            "billingItem": {"id": 5001},
            "powerState": {"keyName": "HALTED"},
            "operatingSystem": {"passwords": [{"username": "root", "password": "s3cret"}]},
        })
        assert node.fqdn == "web-1.example.com"
        assert node.billing_item_id == 5001
        assert node.power_state == "HALTED"
        assert node.passwords[0].password == "s3cret"

    def test_node_without_billing_item(self):
        node = node_from_json({"id": 1, "hostname": "old"})
        assert node.has_billing_item is False
        assert node.passwords == []

    def test_guest_payload(self, guest_order):
        payload = order_to_payload(guest_order)
        container = payload["parameters"][0]
        assert container["complexType"] == "SoftLayer_Container_Product_Order"
        assert container["packageId"] == 46
        assert container["prices"] == [{"id": 1684}, {"id": 123}, {"id": 456}]
        assert container["virtualGuests"] == [{"hostname": "web-1", "domain": "example.com"}]
        assert "hardware" not in container
        assert "imageTemplateId" not in container

    def test_hardware_payload(self):
        order = Order(
            family_id=50,
            location="3",
            prices=[19],
            nodes=[NodeDescriptor(id=77)],
            kind=NodeKind.HARDWARE_SERVER,
            image_template_id=9,
            provision_scripts=["https://example.com/setup.sh"],
        )
        container = order_to_payload(order)["parameters"][0]
        assert container["hardware"] == [{"id": 77}]
        assert container["imageTemplateId"] == 9
        assert container["provisionScripts"] == ["https://example.com/setup.sh"]


class TestSoftLayerProvider:
    """Test REST calls and error mapping."""

    def test_list_catalog_items(self):
        def handler(request):
            assert request.url.path.endswith("/SoftLayer_Product_Package/46/getItems.json")
            assert "objectMask" in request.url.params
            return httpx.Response(200, json=[
                {"id": 1, "prices": [{"id": 123, "categories": [{"categoryCode": "guest_core"}]}]},
            ])

        items = make_provider(handler).list_catalog_items(46)
        assert [item.id for item in items] == [1]
        assert items[0].has_category("guest_core")

    def test_verify_order_posts_container(self, guest_order):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"orderContainers": []})

        make_provider(handler).verify_order(guest_order)
        assert seen["path"].endswith("/SoftLayer_Product_Order/verifyOrder.json")
        assert seen["body"]["parameters"][0]["virtualGuests"][0]["hostname"] == "web-1"

    def test_rejection_carries_remote_message(self, guest_order):
        def handler(request):
            return httpx.Response(500, json={
                "error": "The price for 100 GB (SAN) is not valid",
                "code": "SoftLayer_Exception_Order_InvalidPrice",
            })

        with pytest.raises(RemoteRejection) as exc_info:
            make_provider(handler).verify_order(guest_order)
        assert exc_info.value.message == "The price for 100 GB (SAN) is not valid"
        assert exc_info.value.details["code"] == "SoftLayer_Exception_Order_InvalidPrice"

    def test_server_error_without_body(self, guest_order):
        """Errors the service does not explain are not rejections."""
        provider = make_provider(lambda request: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(ProviderError) as exc_info:
            provider.verify_order(guest_order)
        assert not isinstance(exc_info.value, RemoteRejection)

    def test_auth_failure(self):
        provider = make_provider(lambda request: httpx.Response(401))
        with pytest.raises(ProviderAuthError):
            provider.list_catalog_items(46)

    def test_rate_limited(self, guest_order):
        """Throttling is a quota error, not a rejection of the candidate."""
        provider = make_provider(lambda request: httpx.Response(429, json={"error": "Too many requests"}))
        with pytest.raises(ProviderQuotaError):
            provider.verify_order(guest_order)

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError):
            make_provider(handler).list_nodes(NodeKind.VIRTUAL_GUEST)

    def test_get_missing_node(self):
        provider = make_provider(lambda request: httpx.Response(404))
        assert provider.get_node(NodeKind.HARDWARE_SERVER, 1001) is None

    def test_get_node_uses_service_for_kind(self):
        def handler(request):
            assert "/SoftLayer_Hardware_Server/1001.json" in request.url.path
            return httpx.Response(200, json={"id": 1001, "hostname": "db-1"})

        node = make_provider(handler).get_node(NodeKind.HARDWARE_SERVER, 1001)
        assert node.hostname == "db-1"

    def test_place_order_without_receipt(self, guest_order):
        provider = make_provider(lambda request: httpx.Response(200, content=b""))
        assert provider.place_order(guest_order) is None

    def test_place_order_receipt(self, guest_order):
        def handler(request):
            return httpx.Response(200, json={
                "orderId": 9,
                "orderDetails": {"virtualGuests": [{"id": 1001, "hostname": "web-1"}, {"hostname": "pending"}]},
            })

        receipt = make_provider(handler).place_order(guest_order)
        assert receipt.order_id == 9
        assert [node.id for node in receipt.nodes] == [1001]

    def test_idle_node_has_no_transaction(self):
        provider = make_provider(lambda request: httpx.Response(200, content=b"null"))
        assert provider.get_active_transaction(NodeKind.VIRTUAL_GUEST, 1001) is None

    def test_active_transaction(self):
        def handler(request):
            return httpx.Response(200, json={
                "elapsedSeconds": 30,
                "transactionStatus": {"name": "CLOUD_INSTANCE_SETUP", "averageDuration": 2.5},
            })

        transaction = make_provider(handler).get_active_transaction(NodeKind.VIRTUAL_GUEST, 1001)
        assert transaction.name == "CLOUD_INSTANCE_SETUP"
        assert transaction.average_duration == 2.5

    def test_billing_order_status(self):
        provider = make_provider(lambda request: httpx.Response(200, json={"status": "APPROVED"}))
        assert provider.get_billing_order_status(9) == "APPROVED"
