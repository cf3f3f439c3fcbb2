"""
Node Provisioner Providers
==========================

Remote provider interface and the SoftLayer REST adapter.
"""

from .base import (
    BILLING_ORDER_APPROVED,
    POWER_STATE_HALTED,
    Credentials,
    NodeDescriptor,
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
from .softlayer import SoftLayerProvider, order_to_payload

__all__ = [
    "BILLING_ORDER_APPROVED",
    "POWER_STATE_HALTED",
    "Credentials",
    "NodeDescriptor",
    "NodeKind",
    "NodeRecord",
    "Order",
    "OrderReceipt",
    "ProviderAuthError",
    "ProviderError",
    "ProviderInterface",
    "ProviderQuotaError",
    "ProviderResourceError",
    "RemoteRejection",
    "Transaction",
    "SoftLayerProvider",
    "order_to_payload",
]
