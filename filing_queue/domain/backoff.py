"""
Pure retry backoff evaluation.

Contract:
    ``compute_retry_decision()`` is PURE.  The delay for an item that has
    failed ``k`` times is ``base_delay_minutes * 2**k`` (30, 60, 120, 240,
    480 minutes with the default base).  Once ``k`` reaches
    ``max_attempts`` the item is cancelled instead.

Architecture: filing_queue/domain.  ZERO I/O.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from filing_queue.domain.types import RetryDecision


def backoff_delay_minutes(failure_count: int, base_delay_minutes: int = 30) -> int:
    """Exponential delay for an item that has failed ``failure_count`` times."""
    if failure_count < 0:
        raise ValueError(f"failure_count must be >= 0: {failure_count}")
    return base_delay_minutes * (2 ** failure_count)


def compute_retry_decision(
    failure_count: int,
    now: datetime,
    base_delay_minutes: int = 30,
    max_attempts: int = 5,
) -> RetryDecision:
    """Cancel at the attempt ceiling, otherwise schedule the next retry."""
    failure_count = max(failure_count, 0)
    if failure_count >= max_attempts:
        return RetryDecision(cancel=True)

    delay = backoff_delay_minutes(failure_count, base_delay_minutes)
    return RetryDecision(
        cancel=False,
        next_retry_at=now + timedelta(minutes=delay),
        delay_minutes=delay,
    )
