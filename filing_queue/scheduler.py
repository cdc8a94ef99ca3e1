"""
SubmissionScheduler -- the three externally exposed scheduler operations.

Contract:
    ``run_scheduling_pass()`` runs, in this order:
        1. Urgent escalation (priority >= threshold, one-item batches).
        2. Snapshot selection of the remaining claimable items.
        3. Grouping by (jurisdiction, organization, submission window).
        4. Splitting into portal-bounded, priority-ordered batches.
        5. One atomic claim per batch.

    ``jobs_created`` counts batch jobs only; ``job_ids`` lists urgent jobs
    first, then batch jobs.

    ``requeue_failures()`` runs the retry/backoff pass.
    ``get_queue_statistics()`` returns fresh aggregate counts.

    Passes may run concurrently in any number of threads or processes.
    Correctness rests on the claim's conditional UPDATE, not on any lock
    held here.

Failure modes:
    ``run_scheduling_pass`` and ``requeue_failures`` never raise.  Every
    failure is logged and returned in the result's ``errors``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable
from uuid import uuid4

from sqlalchemy.orm import Session

from filing_config.schema import SchedulerSettings
from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.logging_config import LogContext, get_logger
from filing_queue.domain.grouping import group_queue_items
from filing_queue.domain.types import (
    QueueStatistics,
    RequeueResult,
    SchedulingPassResult,
    UrgentEscalationResult,
)
from filing_queue.selectors.queue_selector import QueueSelector
from filing_queue.services.batching import BatchPlanner
from filing_queue.services.claim import ClaimTransactionManager
from filing_queue.services.escalation import UrgentEscalationService
from filing_queue.services.retry import RetryBackoffService
from filing_queue.services.statistics import QueueStatisticsService

logger = get_logger("queue.scheduler")


class SubmissionScheduler:
    """Runs scheduling and retry passes over the submission queue."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        planner: BatchPlanner,
        claims: ClaimTransactionManager,
        escalation: UrgentEscalationService,
        retry: RetryBackoffService,
        statistics: QueueStatisticsService,
        clock: Clock | None = None,
        settings: SchedulerSettings | None = None,
    ):
        self._session_factory = session_factory
        self._planner = planner
        self._claims = claims
        self._escalation = escalation
        self._retry = retry
        self._statistics = statistics
        self._clock = clock or SystemClock()
        self._settings = settings or SchedulerSettings()

    # -------------------------------------------------------------------------
    # Scheduling pass
    # -------------------------------------------------------------------------

    def run_scheduling_pass(self, submitted_by: str | None = None) -> SchedulingPassResult:
        """One full pass: escalate, select, group, split, claim."""
        submitted_by = submitted_by or self._settings.submitted_by
        pass_id = f"pass_{uuid4().hex[:12]}"

        with LogContext.bind(correlation_id=pass_id, actor_id=submitted_by):
            urgent = UrgentEscalationResult(processed=0, jobs_created=0)
            groups_found = 0
            batches_created = 0
            jobs_created = 0
            job_ids = []
            errors: list[str] = []

            try:
                urgent = self._escalation.run(submitted_by)
                job_ids.extend(urgent.job_ids)
                errors.extend(urgent.errors)

                now = self._clock.now()
                session = self._session_factory()
                try:
                    items = QueueSelector.for_settings(
                        session, self._settings,
                    ).claimable_items(
                        now, below_priority=self._settings.urgent_priority_threshold,
                    )
                    groups = group_queue_items(items)
                    plan = self._planner.plan(groups, session)
                finally:
                    session.close()

                groups_found = len(groups)
                batches_created = len(plan.batches)
                errors.extend(plan.errors)

                claimed = self._claims.claim_all(plan.batches, submitted_by)
                jobs_created = claimed.created
                job_ids.extend(claimed.job_ids)
                errors.extend(claimed.errors)
            except Exception as exc:
                errors.append(f"Scheduling pass failed: {exc}")
                logger.exception("scheduling_pass_failed")

            result = SchedulingPassResult(
                urgent_processed=urgent.processed,
                urgent_jobs_created=urgent.jobs_created,
                groups_found=groups_found,
                batches_created=batches_created,
                jobs_created=jobs_created,
                job_ids=tuple(job_ids),
                errors=tuple(errors),
            )

            logger.info(
                "scheduling_pass_completed",
                extra={
                    "urgent_processed": result.urgent_processed,
                    "urgent_jobs_created": result.urgent_jobs_created,
                    "groups_found": result.groups_found,
                    "batches_created": result.batches_created,
                    "jobs_created": result.jobs_created,
                    "error_count": len(result.errors),
                },
            )
            return result

    # -------------------------------------------------------------------------
    # Retry pass
    # -------------------------------------------------------------------------

    def requeue_failures(self, now: datetime | None = None) -> RequeueResult:
        """Requeue or cancel due failed items; never raises."""
        with LogContext.bind(correlation_id=f"retry_{uuid4().hex[:12]}"):
            try:
                return self._retry.requeue_failures(now)
            except Exception as exc:
                logger.exception("requeue_pass_failed")
                return RequeueResult(
                    requeued=0,
                    cancelled=0,
                    errors=(f"Requeue pass failed: {exc}",),
                )

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_queue_statistics(self) -> QueueStatistics:
        return self._statistics.get_queue_statistics()
