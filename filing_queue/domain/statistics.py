"""
Pure aggregation of queue statistics.

Counts are derived from one snapshot of (status, jurisdiction, priority)
rows on every call.  No counters are stored anywhere.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from filing_queue.domain.types import (
    TERMINAL_STATUSES,
    QueueItemStatus,
    QueueStatistics,
)

StatisticsRow = tuple[str | None, str | None, int | None]


def aggregate_statistics(
    rows: Iterable[StatisticsRow],
    urgent_threshold: int = 8,
) -> QueueStatistics:
    """Aggregate (status, jurisdiction_code, priority) rows.

    ``urgent_count`` counts items at or above ``urgent_threshold`` that are
    still outstanding (not submitted or cancelled).  A row with a NULL
    field counts toward ``total`` but is left out of that field's breakdown.
    """
    total = 0
    by_status: Counter[str] = Counter()
    by_jurisdiction: Counter[str] = Counter()
    by_priority: Counter[str] = Counter()
    urgent = 0
    terminal = {s.value for s in TERMINAL_STATUSES}

    for status, jurisdiction_code, priority in rows:
        total += 1
        if status:
            by_status[status] += 1
        if jurisdiction_code:
            by_jurisdiction[jurisdiction_code] += 1
        if priority is not None:
            by_priority[str(priority)] += 1
            if priority >= urgent_threshold and status not in terminal:
                urgent += 1

    return QueueStatistics(
        total=total,
        ready=by_status[QueueItemStatus.READY.value],
        pending_validation=by_status[QueueItemStatus.PENDING_VALIDATION.value],
        queued=by_status[QueueItemStatus.QUEUED.value],
        in_progress=by_status[QueueItemStatus.IN_PROGRESS.value],
        submitted=by_status[QueueItemStatus.SUBMITTED.value],
        failed=by_status[QueueItemStatus.FAILED.value],
        cancelled=by_status[QueueItemStatus.CANCELLED.value],
        by_jurisdiction=dict(sorted(by_jurisdiction.items())),
        by_priority=dict(sorted(by_priority.items(), key=lambda kv: int(kv[0]))),
        urgent_count=urgent,
    )
