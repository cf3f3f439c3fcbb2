"""
Transaction Tracking
====================

Remembers the last active transaction seen for each node so the
transactions-ended stage can log when one backend transaction finishes
and the next begins. Purely diagnostic: it never decides when polling
stops beyond reporting whether a node is idle.
"""

import logging
import threading
from typing import Dict, Optional

from ..providers.base import Transaction

logger = logging.getLogger(__name__)


class TransactionTracker:
    """Thread-safe map of node id to the last transaction seen for it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last: Dict[int, Transaction] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._last)

    def last_seen(self, node_id: int) -> Optional[Transaction]:
        with self._lock:
            return self._last.get(node_id)

    def observe(self, node_id: int, hostname: str, transaction: Optional[Transaction]) -> bool:
        """
        Record a node's current transaction.

        Args:
            node_id: Node being polled
            hostname: Node hostname, for log messages
            transaction: Active transaction, or None when the node is idle

        Returns:
            True when the node has no active transaction
        """
        with self._lock:
            previous = self._last.get(node_id)

            if transaction is None:
                self._last.pop(node_id, None)
                logger.info(
                    f"Successfully completed all transactions for host {hostname}",
                    extra={"node_id": node_id},
                )
                return True

            if previous is None or previous.name != transaction.name:
                if previous is not None:
                    logger.info(
                        f"Successfully completed transaction {previous.name} "
                        f"in {previous.elapsed_seconds} seconds.",
                        extra={"node_id": node_id},
                    )
                logger.info(
                    f"Current transaction is {transaction.name}. "
                    f"Average completion time is {transaction.average_duration} minutes.",
                    extra={"node_id": node_id},
                )

            self._last[node_id] = transaction
            return False

    def forget(self, node_id: int) -> None:
        """Drop whatever was last seen for a node that is no longer polled."""
        with self._lock:
            self._last.pop(node_id, None)
