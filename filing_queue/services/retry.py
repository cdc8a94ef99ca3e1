"""
RetryBackoffService -- re-admits failed items or abandons them.

Contract:
    ``requeue_failures(now)`` selects failed items whose ``next_retry_at``
    has arrived (NULL counts as due).  For each:
      - failure_count >= max_attempts (5): status -> cancelled (terminal).
      - otherwise: next_retry_at = now + base * 2**failure_count minutes,
        assigned_job_id cleared, status -> ready.

    Backoff is per item; no coordination across items of a jurisdiction.

Invariants enforced:
    - This service is the only path from failed back to ready, and it
      always clears the stale job reference when taking it.
    - Each transition is a conditional UPDATE guarded by status='failed'
      and committed on its own, so redundant retry passes never count an
      item twice and one bad row does not block the others.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filing_config.schema import SchedulerSettings
from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.exceptions import RetryExhaustedError, StoreUnavailableError
from filing_kernel.logging_config import get_logger
from filing_queue.domain.backoff import compute_retry_decision
from filing_queue.domain.types import QueueItem, QueueItemStatus, RequeueResult
from filing_queue.models.queue import QueueItemModel
from filing_queue.selectors.queue_selector import QueueSelector

logger = get_logger("queue.retry")


class RetryBackoffService:
    """Exponential backoff over failed queue items."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        settings: SchedulerSettings | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._settings = settings or SchedulerSettings()

    def requeue_failures(self, now: datetime | None = None) -> RequeueResult:
        """Requeue or cancel every due failed item.

        Raises:
            StoreUnavailableError: If the failed items cannot be selected.
        """
        now = now or self._clock.now()
        requeued = 0
        cancelled = 0
        errors: list[str] = []

        session = self._session_factory()
        try:
            try:
                due = QueueSelector.for_settings(session, self._settings).due_failures(now)
            except SQLAlchemyError as exc:
                raise StoreUnavailableError("failed item selection", str(exc)) from exc
            session.rollback()

            for item in due:
                try:
                    outcome = self._transition(session, item, now)
                    session.commit()
                except SQLAlchemyError as exc:
                    session.rollback()
                    errors.append(f"Failed to requeue item {item.item_id}: {exc}")
                    logger.error(
                        "requeue_item_failed",
                        extra={"queue_item_id": str(item.item_id)},
                        exc_info=True,
                    )
                    continue

                if outcome == QueueItemStatus.CANCELLED:
                    cancelled += 1
                elif outcome == QueueItemStatus.READY:
                    requeued += 1
        finally:
            session.close()

        logger.info(
            "requeue_completed",
            extra={
                "requeued": requeued,
                "cancelled": cancelled,
                "error_count": len(errors),
            },
        )
        return RequeueResult(requeued=requeued, cancelled=cancelled, errors=tuple(errors))

    def _transition(
        self, session: Session, item: QueueItem, now: datetime,
    ) -> QueueItemStatus | None:
        """Apply the backoff decision.  Returns None if another worker won."""
        decision = compute_retry_decision(
            item.failure_count,
            now,
            base_delay_minutes=self._settings.retry_base_delay_minutes,
            max_attempts=self._settings.max_attempts,
        )

        guard = update(QueueItemModel).where(
            QueueItemModel.id == item.item_id,
            QueueItemModel.status == QueueItemStatus.FAILED.value,
        )

        if decision.cancel:
            result = session.execute(
                guard.values(
                    status=QueueItemStatus.CANCELLED.value,
                    updated_at=now,
                ).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            exhausted = RetryExhaustedError(
                str(item.item_id), item.failure_count, self._settings.max_attempts,
            )
            logger.warning(
                "retry_exhausted",
                extra={
                    "queue_item_id": str(item.item_id),
                    "jurisdiction_code": item.jurisdiction_code,
                    "failure_count": item.failure_count,
                    "error_code": exhausted.code,
                    "detail": str(exhausted),
                },
            )
            return QueueItemStatus.CANCELLED

        result = session.execute(
            guard.values(
                status=QueueItemStatus.READY.value,
                assigned_job_id=None,
                next_retry_at=decision.next_retry_at,
                updated_at=now,
            ).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        logger.info(
            "item_requeued",
            extra={
                "queue_item_id": str(item.item_id),
                "failure_count": item.failure_count,
                "delay_minutes": decision.delay_minutes,
                "next_retry_at": decision.next_retry_at,
            },
        )
        return QueueItemStatus.READY
