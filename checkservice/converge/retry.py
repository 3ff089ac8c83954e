"""Bounded polling for slow-starting dependencies.

The predicate is polled once immediately and then up to ``max_retries``
more times, sleeping a fixed ``interval_seconds`` before each retry. Total
attempts are ``max_retries + 1`` and the total sleep never exceeds
``max_retries * interval_seconds``. There is no exponential backoff, so the
timing an operator sees on a slow-booting database stays predictable.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..models import OrchestrationAttempt, WaitOutcome

log = logging.getLogger(__name__)

RetryCallback = Callable[[OrchestrationAttempt], None]


def wait_until(
    predicate: Callable[[], bool],
    max_retries: int,
    interval_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[RetryCallback] = None,
) -> WaitOutcome:
    """Poll ``predicate`` until it returns True or the retries run out.

    ``on_retry`` is invoked right before each sleep with the attempt state,
    which is useful for "attempt 3 of 20" progress lines.
    """
    if max_retries < 0:
        raise ValueError("max_retries must not be negative")

    attempt = OrchestrationAttempt(max_retries=max_retries, interval_seconds=interval_seconds)
    if predicate():
        return WaitOutcome.success

    while attempt.retry_count < max_retries:
        attempt.retry_count += 1
        if on_retry is not None:
            on_retry(attempt)
        log.debug(
            "Retrying in %.1fs (attempt %d/%d)",
            interval_seconds,
            attempt.retry_count,
            max_retries,
        )
        sleep(interval_seconds)
        if predicate():
            return WaitOutcome.success

    return WaitOutcome.exhausted


@dataclass
class RetryPolicy:
    """Fixed attempt count and interval, bound to a sleep function."""

    max_retries: int
    interval_seconds: float
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def wait_until(
        self,
        predicate: Callable[[], bool],
        on_retry: Optional[RetryCallback] = None,
    ) -> WaitOutcome:
        return wait_until(
            predicate,
            self.max_retries,
            self.interval_seconds,
            sleep=self.sleep,
            on_retry=on_retry,
        )

    @property
    def max_wait_seconds(self) -> float:
        return self.max_retries * self.interval_seconds
