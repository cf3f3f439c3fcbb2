"""
Node Provisioner Test Fixtures
==============================

Shared fixtures for all test modules.
"""

import pytest
from unittest.mock import MagicMock

from node_provisioner.catalog.base import CatalogItem, PriceAlternative
from node_provisioner.config import ProvisionerConfig
from node_provisioner.providers.base import (
    Credentials,
    NodeRecord,
    ProviderInterface,
    Transaction,
)
from node_provisioner.provisioning.orders import OrderTemplate


# ============================================
# CATALOG
# ============================================

def make_item(item_id, prices, categories=(), description="", capacity=None):
    """Build a catalog item with the given price ids."""
    return CatalogItem(
        id=item_id,
        description=description,
        capacity=capacity,
        categories=tuple(categories),
        prices=tuple(PriceAlternative(price_id) for price_id in prices),
    )


@pytest.fixture
def item_factory():
    """Factory for catalog items."""
    return make_item


@pytest.fixture
def guest_catalog():
    """Minimal virtual guest catalog: one CPU, RAM, primary disk and uplink."""
    return [
        make_item(1, [123], ["guest_core"], "2 x 2.0 GHz Cores", capacity=2),
        make_item(2, [456], ["ram"], "2 GB", capacity=2),
        make_item(3, [789], ["guest_disk0"], "100 GB (SAN)", capacity=100),
        make_item(4, [272], ["port_speed"], "10 Mbps Public & Private Networks", capacity=10),
        make_item(5, [1684], ["os"], "Ubuntu Linux 12.04 LTS Precise Pangolin - Minimal Install (64 bit)"),
    ]


@pytest.fixture
def bare_metal_catalog():
    """Bare metal catalog with one well-formed and one malformed CPU item."""
    return [
        make_item(
            10, [19], ["server_core"],
            "16 x 2.0 GHz Core Bare Metal Instance - 64 GB Ram ", capacity=16,
        ),
        make_item(11, [20], ["server_core"], "Custom Bare Metal Instance", capacity=4),
        make_item(12, [123], ["disk0"], "500 GB SATA II", capacity=500),
        make_item(13, [272], ["port_speed"], "100 Mbps Public & Private Network Uplinks", capacity=100),
    ]


# ============================================
# CLOCK
# ============================================

class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    """A fake clock; pass ``fake_clock`` as clock and ``fake_clock.sleep`` as sleep."""
    return FakeClock()


# ============================================
# MOCK PROVIDER
# ============================================

def make_node(node_id=1001, hostname="web-1", primary_ip="1.2.3.4", backend_ip="10.0.0.4",
              passwords=True, billing_item_id=5001, power_state="RUNNING"):
    """Build a node record, ready for login by default."""
    return NodeRecord(
        id=node_id,
        hostname=hostname,
        domain="example.com",
        primary_ip=primary_ip,
        backend_ip=backend_ip,
        billing_item_id=billing_item_id,
        passwords=[Credentials("root", "s3cret")] if passwords else [],
        datacenter="dal05",
        power_state=power_state,
    )


@pytest.fixture
def node_factory():
    """Factory for node records."""
    return make_node


@pytest.fixture
def transaction():
    """An active provisioning transaction."""
    return Transaction(name="Cloud Instance Setup", elapsed_seconds=12, average_duration=1.5)


@pytest.fixture
def remote():
    """Mock remote provider with every call stubbed."""
    provider = MagicMock(spec=ProviderInterface)
    provider.verify_order.return_value = None
    provider.cancel_billing_item.return_value = True
    return provider


# ============================================
# CONFIG & ORDERS
# ============================================

@pytest.fixture
def test_config():
    """Test configuration with dummy credentials."""
    config = ProvisionerConfig()
    config.credentials.username = "tester"
    config.credentials.api_key = "key_test_fake"
    return config


@pytest.fixture
def order_template():
    """A virtual guest request."""
    return OrderTemplate(
        hostname="web-1",
        domain="example.com",
        hardware_id="123,456,789,272",
        location="3",
        image_price_id=1684,
    )
