"""
Provisioning State Machine
==========================

Drives a placed order through the provider's out-of-band provisioning
workflow:

    ORDER_PLACED -> ORDER_APPROVED -> TRANSACTIONS_STARTED
        -> TRANSACTIONS_ENDED -> LOGIN_READY -> COMPLETE

Each transition is gated by a bounded poll with its own timeout and
interval. A failed stage moves the run to FAILED, recording the stage
and reason, and the error is re-raised to the caller. The destroy path
cancels the node's billing item and waits for the resulting transactions
to start and end.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, TypeVar

from ..catalog.index import CatalogIndex
from ..errors import ProvisioningError, StageTimeout, UnsupportedOperation
from ..providers.base import (
    BILLING_ORDER_APPROVED,
    POWER_STATE_HALTED,
    Credentials,
    NodeRecord,
    OrderReceipt,
    ProviderError,
    ProviderInterface,
    Transaction,
)
from .orders import OrderDefaults, OrderTemplate, build_order
from .polling import Clock, Sleep, StagePolicy, poll_until
from .transactions import TransactionTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProvisioningState(Enum):
    ORDER_PLACED = "ORDER_PLACED"
    ORDER_APPROVED = "ORDER_APPROVED"
    TRANSACTIONS_STARTED = "TRANSACTIONS_STARTED"
    TRANSACTIONS_ENDED = "TRANSACTIONS_ENDED"
    LOGIN_READY = "LOGIN_READY"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


STATE_ORDER = [
    ProvisioningState.ORDER_PLACED,
    ProvisioningState.ORDER_APPROVED,
    ProvisioningState.TRANSACTIONS_STARTED,
    ProvisioningState.TRANSACTIONS_ENDED,
    ProvisioningState.LOGIN_READY,
    ProvisioningState.COMPLETE,
]

POWER_OFF_STAGE = "POWERED_OFF"


@dataclass(frozen=True)
class StagePolicies:
    """Per-stage timeout and interval configuration for one family."""
    order_approved: StagePolicy
    transactions_started: StagePolicy
    transactions_ended: StagePolicy
    login_ready: StagePolicy
    powered_off: StagePolicy = StagePolicy(timeout=600, interval=5)


@dataclass
class ProvisioningProgress:
    """
    Where a provisioning run is. Transitions only move forward; FAILED
    is terminal.
    """
    hostname: str
    state: Optional[ProvisioningState] = None
    history: List[ProvisioningState] = field(default_factory=list)
    order_id: Optional[int] = None
    node_id: Optional[int] = None
    failed_stage: Optional[str] = None
    failure_reason: Optional[str] = None

    @property
    def is_failed(self) -> bool:
        return self.state == ProvisioningState.FAILED

    def advance(self, state: ProvisioningState) -> None:
        if self.is_failed:
            raise ProvisioningError(f"{self.hostname}: cannot advance a failed run to {state.value}")
        current = STATE_ORDER.index(self.state) if self.state else -1
        if state not in STATE_ORDER or STATE_ORDER.index(state) != current + 1:
            raise ProvisioningError(
                f"{self.hostname}: illegal transition "
                f"{self.state.value if self.state else 'START'} -> {state.value}"
            )
        self.state = state
        self.history.append(state)

    def fail(self, stage: str, reason: str) -> None:
        self.failed_stage = stage
        self.failure_reason = reason
        self.state = ProvisioningState.FAILED
        self.history.append(ProvisioningState.FAILED)

    def log_context(self) -> Dict[str, object]:
        """Structured logging fields describing this run."""
        context: Dict[str, object] = {"hostname": self.hostname}
        if self.order_id is not None:
            context["order_id"] = self.order_id
        if self.node_id is not None:
            context["node_id"] = self.node_id
        if self.failed_stage:
            context["stage"] = self.failed_stage
            context["reason"] = self.failure_reason
        elif self.state is not None:
            context["stage"] = self.state.value
        return context


@dataclass
class ProvisionResult:
    """A usable node: identity, addresses and initial credentials."""
    node: NodeRecord
    credentials: Credentials
    combination: str
    progress: ProvisioningProgress

    @property
    def node_id(self) -> int:
        return self.node.id

    @property
    def public_ip(self) -> Optional[str]:
        return self.node.primary_ip

    @property
    def private_ip(self) -> Optional[str]:
        return self.node.backend_ip


class ProvisioningStateMachine:
    """
    Provisioning and decommissioning workflow for one server family.

    The transaction tracker is shared by every call made through the
    instance, and by other state machines for the same node kind when one
    is passed in. Concurrent runs for different nodes are tracked by node id.
    """

    def __init__(
        self,
        remote: ProviderInterface,
        defaults: OrderDefaults,
        policies: StagePolicies,
        requires_order_approval: bool = True,
        supports_suspend: bool = True,
        power_off_before_cancel: bool = False,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
        tracker: Optional[TransactionTracker] = None,
        catalog: Optional[Callable[[], CatalogIndex]] = None,
    ):
        self.remote = remote
        self.catalog = catalog
        self.defaults = defaults
        self.kind = defaults.kind
        self.policies = policies
        self.requires_order_approval = requires_order_approval
        self.supports_suspend = supports_suspend
        self.power_off_before_cancel = power_off_before_cancel
        self.clock = clock
        self.sleep = sleep
        self.tracker = tracker if tracker is not None else TransactionTracker()

    # =========================================
    # PROVISIONING
    # =========================================

    def provision(
        self,
        template: OrderTemplate,
        combination: str,
        progress: Optional[ProvisioningProgress] = None,
    ) -> ProvisionResult:
        """
        Place the real order and poll it to completion.

        Args:
            template: Node request
            combination: Verified price combination
            progress: Optional progress record to update

        Returns:
            The provisioned node and its credentials

        Raises:
            StageTimeout: If a stage did not complete in time
            ProviderError: If a remote call failed
        """
        progress = progress or ProvisioningProgress(hostname=template.hostname)
        catalog = self.catalog() if self.catalog and self.defaults.extra_item_ids else None
        order = build_order(template, self.defaults, combination, catalog)
        log_extra = {"family_id": self.defaults.family_id}

        logger.info(f"Placing order for {template.hostname} with prices {order.prices}", extra=log_extra)
        receipt = self._stage(progress, ProvisioningState.ORDER_PLACED,
                              lambda: self.remote.place_order(order))
        if receipt is not None:
            progress.order_id = receipt.order_id

        node = self._stage(progress, ProvisioningState.ORDER_APPROVED,
                           lambda: self._await_order(template, receipt))
        progress.node_id = node.id
        log_extra["node_id"] = node.id
        logger.info(f"Order for {template.hostname} approved, node {node.id}", extra=log_extra)

        self._stage(progress, ProvisioningState.TRANSACTIONS_STARTED,
                    lambda: self._await_transactions_started(node.id, template.hostname))
        self._stage(progress, ProvisioningState.TRANSACTIONS_ENDED,
                    lambda: self._await_transactions_ended(node.id, template.hostname))
        self._stage(progress, ProvisioningState.LOGIN_READY,
                    lambda: self._await_login(node.id, template))
        final = self._stage(progress, ProvisioningState.COMPLETE,
                            lambda: self._final_node(node.id, template))

        logger.info(f"Node {final.id} ({final.fqdn}) is ready", extra={**progress.log_context(), **log_extra})
        return ProvisionResult(
            node=final,
            credentials=final.passwords[0],
            combination=combination,
            progress=progress,
        )

    def _stage(self, progress: ProvisioningProgress, state: ProvisioningState, action: Callable[[], T]) -> T:
        try:
            result = action()
        except (ProvisioningError, ProviderError) as e:
            progress.fail(state.value, str(e))
            logger.error(
                f"Provisioning {progress.hostname} failed at {state.value}: {e}",
                extra={**progress.log_context(), "family_id": self.defaults.family_id},
            )
            raise
        progress.advance(state)
        return result

    def _await_order(self, template: OrderTemplate, receipt: Optional[OrderReceipt]) -> NodeRecord:
        if receipt is not None and receipt.nodes:
            return receipt.nodes[0]

        order_id = receipt.order_id if receipt is not None else None
        if order_id is None:
            # Bare-metal orders may come back without a receipt; the node can
            # then only be found by the hostname it was ordered with.
            logger.warning(
                f"No order receipt for {template.hostname}, locating node by hostname",
                extra={"family_id": self.defaults.family_id},
            )

        def located() -> Optional[NodeRecord]:
            if order_id is not None and self.requires_order_approval:
                if self.remote.get_billing_order_status(order_id) != BILLING_ORDER_APPROVED:
                    return None
            return self._find_by_hostname(template.hostname, template.domain)

        return self._poll(
            located,
            ProvisioningState.ORDER_APPROVED.value,
            self.policies.order_approved,
            template.hostname,
            f"order for host {template.hostname} did not finish within configured delay",
        )

    def _find_by_hostname(self, hostname: str, domain: str) -> Optional[NodeRecord]:
        for node in self.remote.list_nodes(self.kind):
            if node.hostname == hostname and (not domain or not node.domain or node.domain == domain):
                return node
        return None

    def _await_transactions_started(self, node_id: int, hostname: str) -> Transaction:
        transaction = self._poll(
            lambda: self.remote.get_active_transaction(self.kind, node_id),
            ProvisioningState.TRANSACTIONS_STARTED.value,
            self.policies.transactions_started,
            hostname,
            f"host {hostname} did not start its transactions within configured delay",
        )
        self.tracker.observe(node_id, hostname, transaction)
        return transaction

    def _await_transactions_ended(self, node_id: int, hostname: str) -> bool:
        try:
            return self._poll(
                lambda: self.tracker.observe(
                    node_id, hostname, self.remote.get_active_transaction(self.kind, node_id)
                ),
                ProvisioningState.TRANSACTIONS_ENDED.value,
                self.policies.transactions_ended,
                hostname,
                f"host {hostname} did not finish its transactions within configured delay",
            )
        finally:
            # Idle nodes are already dropped; failed polls must not leave entries behind.
            self.tracker.forget(node_id)

    def _await_login(self, node_id: int, template: OrderTemplate) -> NodeRecord:
        def ready() -> Optional[NodeRecord]:
            node = self.remote.get_node(self.kind, node_id)
            return node if self.has_login_details(node, template) else None

        return self._poll(
            ready,
            ProvisioningState.LOGIN_READY.value,
            self.policies.login_ready,
            template.hostname,
            f"host {template.hostname} has no login details within configured delay",
        )

    def _final_node(self, node_id: int, template: OrderTemplate) -> NodeRecord:
        node = self.remote.get_node(self.kind, node_id)
        if not self.has_login_details(node, template):
            raise ProvisioningError(f"Node {node_id} lost its login details before completion")
        return node

    @staticmethod
    def has_login_details(node: Optional[NodeRecord], template: OrderTemplate) -> bool:
        """
        A node is reachable once it has a credential and its addresses.
        Private-network-only nodes need only the private address.
        """
        if node is None or not node.passwords or not node.backend_ip:
            return False
        if template.private_network_only or node.private_network_only:
            return True
        return bool(node.primary_ip)

    def _poll(self, predicate: Callable[[], T], stage: str, policy: StagePolicy,
              subject: str, message: str) -> T:
        try:
            return poll_until(predicate, stage, policy, self.clock, self.sleep, subject)
        except StageTimeout as e:
            raise StageTimeout(e.stage, e.timeout, subject, f"{e.stage}: {message} ({e.timeout}s)") from e

    # =========================================
    # NODE LIFECYCLE
    # =========================================

    def destroy(self, node_id: int) -> bool:
        """
        Cancel a node's billing item and wait for decommissioning.

        A node that no longer exists, or has no billing item, is already
        gone and nothing further is done.

        Returns:
            True once the node is gone

        Raises:
            StageTimeout: If decommissioning transactions did not start or end in time
        """
        node = self.remote.get_node(self.kind, node_id)
        if node is None:
            logger.info(f"Node {node_id} not found, nothing to destroy", extra={"node_id": node_id})
            return True
        if not node.has_billing_item:
            logger.info(f"Node {node_id} has no billing item, treating as already destroyed",
                        extra={"node_id": node_id})
            return True

        if self.power_off_before_cancel:
            self._power_off(node)

        logger.info(f"Cancelling billing item {node.billing_item_id} of node {node_id}",
                    extra={"node_id": node_id})
        self.remote.cancel_billing_item(node.billing_item_id)

        self._await_transactions_started(node.id, node.hostname)
        self._await_transactions_ended(node.id, node.hostname)
        return True

    def _power_off(self, node: NodeRecord) -> None:
        self.remote.power_off_node(self.kind, node.id)

        def halted() -> bool:
            current = self.remote.get_node(self.kind, node.id)
            return current is not None and current.power_state == POWER_STATE_HALTED

        self._poll(
            halted,
            POWER_OFF_STAGE,
            self.policies.powered_off,
            node.hostname,
            f"host {node.hostname} did not power off within configured delay",
        )

    def reboot(self, node_id: int) -> bool:
        return self.remote.reboot_node(self.kind, node_id)

    def suspend(self, node_id: int) -> bool:
        if not self.supports_suspend:
            raise UnsupportedOperation("suspending is not supported for bare metal instances")
        return self.remote.pause_node(node_id)

    def resume(self, node_id: int) -> bool:
        if not self.supports_suspend:
            raise UnsupportedOperation("resuming is not supported for bare metal instances")
        return self.remote.resume_node(node_id)
