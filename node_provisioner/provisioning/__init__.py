"""
Provisioning
============

Order selection and the provisioning state machine.
"""

from .orders import OrderDefaults, OrderTemplate, build_order, extra_prices
from .polling import StagePolicy, poll_until
from .selector import PriceCombinationSelector
from .state_machine import (
    ProvisioningProgress,
    ProvisioningState,
    ProvisioningStateMachine,
    ProvisionResult,
    StagePolicies,
)
from .transactions import TransactionTracker

__all__ = [
    "OrderDefaults",
    "OrderTemplate",
    "build_order",
    "extra_prices",
    "StagePolicy",
    "poll_until",
    "PriceCombinationSelector",
    "ProvisioningProgress",
    "ProvisioningState",
    "ProvisioningStateMachine",
    "ProvisionResult",
    "StagePolicies",
    "TransactionTracker",
]
