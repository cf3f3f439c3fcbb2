"""
Node Provisioner
================

Provisions virtual guests and bare-metal servers from a provider's
product catalog: resolves hardware profiles and price combinations,
verifies orders, and polls placed orders until nodes are usable.
"""

from .config import ProvisionerConfig, SoftLayerCredentials
from .errors import (
    CatalogResolutionError,
    CombinationExhausted,
    ConfigurationError,
    ProvisioningError,
    StageTimeout,
    UnsupportedOperation,
)
from .logging_config import configure_logging
from .provisioning.orders import OrderTemplate
from .provisioning.state_machine import ProvisionResult, ProvisioningState
from .service import NodeProvisioningService

__version__ = "0.1.0"

__all__ = [
    "ProvisionerConfig",
    "SoftLayerCredentials",
    "CatalogResolutionError",
    "CombinationExhausted",
    "ConfigurationError",
    "ProvisioningError",
    "StageTimeout",
    "UnsupportedOperation",
    "configure_logging",
    "OrderTemplate",
    "ProvisionResult",
    "ProvisioningState",
    "NodeProvisioningService",
]
