"""
Bounded Polling
===============

Synchronous poll-until-true loop used by every provisioning stage.

The clock and sleep functions are injected so stages can be driven by a
fake clock in tests. There is no background scheduler: the loop runs on
the calling thread and gives up once the stage's timeout has elapsed.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ..errors import ConfigurationError, StageTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], None]


@dataclass(frozen=True)
class StagePolicy:
    """
    Timeout and retry interval of one stage, in seconds.

    When ``max_interval`` is set the interval grows by ``backoff`` after
    every failed check, up to ``max_interval``.
    """
    timeout: float
    interval: float
    max_interval: Optional[float] = None
    backoff: float = 1.5

    def __post_init__(self):
        if self.timeout <= 0 or self.interval <= 0:
            raise ConfigurationError(
                f"Stage timeout and interval must be positive: {self.timeout}/{self.interval}"
            )
        if self.max_interval is not None and self.max_interval < self.interval:
            raise ConfigurationError(
                f"max_interval {self.max_interval} is below interval {self.interval}"
            )


def poll_until(
    predicate: Callable[[], T],
    stage: str,
    policy: StagePolicy,
    clock: Clock = time.monotonic,
    sleep: Sleep = time.sleep,
    subject: str = "",
) -> T:
    """
    Call ``predicate`` until it returns a truthy value.

    Args:
        predicate: Check to repeat; its truthy result is returned
        stage: Stage name reported on timeout
        policy: Timeout and interval for the stage
        clock: Monotonic clock in seconds
        sleep: Sleep function
        subject: What is being waited on, for error messages

    Returns:
        The first truthy predicate result

    Raises:
        StageTimeout: If the timeout elapses first
    """
    started = clock()
    interval = policy.interval
    attempts = 0

    while True:
        attempts += 1
        result = predicate()
        if result:
            logger.debug(f"{stage} satisfied for {subject} after {attempts} check(s)")
            return result

        elapsed = clock() - started
        if elapsed >= policy.timeout:
            raise StageTimeout(stage, policy.timeout, subject)

        sleep(min(interval, policy.timeout - elapsed))
        if policy.max_interval is not None:
            interval = min(interval * policy.backoff, policy.max_interval)
