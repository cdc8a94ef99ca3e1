"""
Pure grouping and batch-splitting functions.

Contract:
    ``group_queue_items()``, ``split_group()`` and ``order_batches()`` are
    PURE -- no I/O, no clock reads.  Given the same snapshot they return
    the same groups and the same member order, whatever order the snapshot
    rows arrived in.

Architecture: filing_queue/domain.  ZERO I/O.

Invariants enforced:
    - Every batch produced by ``split_group`` has at most ``max_batch_size``
      members.
    - Members are sliced in priority-descending order, ties broken by
      earlier scheduled submission time, then by item id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable
from uuid import uuid4

from filing_queue.domain.types import BatchGroup, QueueItem, SubmissionBatch

# (group, offset, now) -> batch id
BatchIdFactory = Callable[[BatchGroup, int, datetime], str]


def member_sort_key(item: QueueItem) -> tuple:
    """Priority DESC, scheduled time ASC (unscheduled first), item id ASC."""
    return (
        -item.priority,
        item.scheduled_submission_at is not None,
        item.scheduled_submission_at,
        str(item.item_id),
    )


def group_queue_items(items: Iterable[QueueItem]) -> list[BatchGroup]:
    """Partition claimable items by (jurisdiction, organization, window).

    Returns groups sorted by key; each group's members are in
    ``member_sort_key`` order and its priority is the highest member
    priority.
    """
    buckets: dict[tuple[str, str, str], list[QueueItem]] = {}
    for item in items:
        key = (item.jurisdiction_code, item.organization_id, item.submission_window)
        buckets.setdefault(key, []).append(item)

    groups: list[BatchGroup] = []
    for key in sorted(buckets):
        members = sorted(buckets[key], key=member_sort_key)
        jurisdiction_code, organization_id, submission_window = key
        groups.append(
            BatchGroup(
                jurisdiction_code=jurisdiction_code,
                organization_id=organization_id,
                submission_window=submission_window,
                items=tuple(members),
                total_records=len(members),
                priority=max(m.priority for m in members),
            )
        )
    return groups


def make_batch_id(group: BatchGroup, offset: int, now: datetime) -> str:
    """Unique, human-traceable batch identifier."""
    return (
        f"batch_{group.jurisdiction_code}_{group.organization_id}_"
        f"{now:%Y%m%d%H%M%S}_{offset}_{uuid4().hex[:8]}"
    )


def make_urgent_batch_id(jurisdiction_code: str, now: datetime) -> str:
    return f"urgent_{jurisdiction_code}_{now:%Y%m%d%H%M%S}_{uuid4().hex[:8]}"


def split_group(
    group: BatchGroup,
    max_batch_size: int,
    now: datetime,
    batch_id_factory: BatchIdFactory = make_batch_id,
) -> list[SubmissionBatch]:
    """Slice a group into consecutive batches of at most ``max_batch_size``.

    Raises:
        ValueError: If ``max_batch_size`` is not positive.
    """
    if max_batch_size <= 0:
        raise ValueError(f"max_batch_size must be positive: {max_batch_size}")

    ordered = sorted(group.items, key=member_sort_key)
    batches: list[SubmissionBatch] = []
    for offset in range(0, len(ordered), max_batch_size):
        chunk = ordered[offset:offset + max_batch_size]
        batches.append(
            SubmissionBatch(
                batch_id=batch_id_factory(group, offset, now),
                jurisdiction_code=group.jurisdiction_code,
                organization_id=group.organization_id,
                queue_item_ids=tuple(m.item_id for m in chunk),
                source_record_ids=tuple(m.source_record_id for m in chunk),
                record_count=len(chunk),
                priority=max(m.priority for m in chunk),
                submission_window=group.submission_window,
            )
        )
    return batches


def order_batches(batches: Iterable[SubmissionBatch]) -> list[SubmissionBatch]:
    """Stable sort by priority descending."""
    return sorted(batches, key=lambda b: -b.priority)


def single_item_batch(item: QueueItem, now: datetime) -> SubmissionBatch:
    """One-item urgent batch for the escalation path."""
    return SubmissionBatch(
        batch_id=make_urgent_batch_id(item.jurisdiction_code, now),
        jurisdiction_code=item.jurisdiction_code,
        organization_id=item.organization_id,
        queue_item_ids=(item.item_id,),
        source_record_ids=(item.source_record_id,),
        record_count=1,
        priority=item.priority,
        submission_window=item.submission_window,
        is_urgent=True,
    )
