"""
BatchPlanner -- turns groups into globally ordered candidate batches.

Contract:
    ``plan()`` resolves each group's portal limit, splits the group with
    the pure ``split_group``, and orders all batches by priority (highest
    first) so urgent groups are not starved behind large low-priority ones.
    Stored portal limits are read once per plan, before any group is split.
    If that read fails the plan is empty and carries a single error.
    A failure in one group is recorded as an error message and the group is
    skipped; the other groups are still planned.

Architecture: filing_queue/services.  Reads only; never writes.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy.orm import Session

from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.exceptions import StoreUnavailableError
from filing_kernel.logging_config import get_logger
from filing_queue.domain.grouping import order_batches, split_group
from filing_queue.domain.types import BatchGroup, BatchPlan, SubmissionBatch
from filing_queue.services.portal_limits import PortalLimitProvider

logger = get_logger("queue.batching")


class BatchPlanner:
    """Splits groups into size-bounded, priority-ordered batches."""

    def __init__(
        self,
        portal_limits: PortalLimitProvider,
        clock: Clock | None = None,
    ):
        self._portal_limits = portal_limits
        self._clock = clock or SystemClock()

    def plan(
        self,
        groups: Sequence[BatchGroup],
        session: Session | None = None,
    ) -> BatchPlan:
        now = self._clock.now()
        batches: list[SubmissionBatch] = []
        errors: list[str] = []

        stored = None
        if session is not None and groups:
            try:
                stored = self._portal_limits.load_stored(session)
            except StoreUnavailableError as exc:
                logger.error("portal_limits_unavailable", extra={"group_count": len(groups)})
                return BatchPlan(
                    batches=(),
                    errors=(f"Failed to load portal limits: {exc}",),
                )

        for group in groups:
            try:
                max_size = self._portal_limits.resolve(group.jurisdiction_code, stored)
                group_batches = split_group(group, max_size, now)
            except Exception as exc:
                message = (
                    f"Failed to plan batches for group "
                    f"{group.jurisdiction_code}/{group.organization_id}/"
                    f"{group.submission_window}: {exc}"
                )
                errors.append(message)
                logger.exception(
                    "batch_planning_failed",
                    extra={
                        "jurisdiction_code": group.jurisdiction_code,
                        "organization_id": group.organization_id,
                        "submission_window": group.submission_window,
                    },
                )
                continue

            batches.extend(group_batches)
            logger.debug(
                "group_split",
                extra={
                    "jurisdiction_code": group.jurisdiction_code,
                    "organization_id": group.organization_id,
                    "total_records": group.total_records,
                    "max_batch_size": max_size,
                    "batch_count": len(group_batches),
                },
            )

        return BatchPlan(batches=tuple(order_batches(batches)), errors=tuple(errors))
