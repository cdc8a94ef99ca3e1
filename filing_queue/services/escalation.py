"""
UrgentEscalationService -- priority bypass for time-sensitive filings.

Contract:
    ``run()`` selects every ready, unassigned item whose priority is at or
    above the urgent threshold (default 8), highest priority first, and
    claims each one on its own as a one-item batch.  It runs before
    grouping on every pass, which bounds the latency of urgent filings
    independently of the batching cadence.

Failure modes:
    Never raises.  Selection and claim failures are returned as messages
    in ``UrgentEscalationResult.errors``.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy.orm import Session

from filing_config.schema import SchedulerSettings
from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.exceptions import ClaimError, StoreUnavailableError
from filing_kernel.logging_config import get_logger
from filing_queue.domain.grouping import member_sort_key, single_item_batch
from filing_queue.domain.types import UrgentEscalationResult
from filing_queue.selectors.queue_selector import QueueSelector
from filing_queue.services.claim import ClaimTransactionManager

logger = get_logger("queue.escalation")


class UrgentEscalationService:
    """Claims urgent items individually ahead of batch formation."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        claims: ClaimTransactionManager,
        clock: Clock | None = None,
        settings: SchedulerSettings | None = None,
    ):
        self._session_factory = session_factory
        self._claims = claims
        self._clock = clock or SystemClock()
        self._settings = settings or SchedulerSettings()

    def run(self, submitted_by: str = "system") -> UrgentEscalationResult:
        threshold = self._settings.urgent_priority_threshold

        session = None
        try:
            session = self._session_factory()
            urgent = QueueSelector.for_settings(
                session, self._settings,
            ).urgent_items(threshold)
        except Exception as exc:
            error = StoreUnavailableError("urgent item selection", str(exc))
            logger.exception("urgent_selection_failed")
            return UrgentEscalationResult(processed=0, jobs_created=0, errors=(str(error),))
        finally:
            if session is not None:
                session.close()

        job_ids = []
        errors: list[str] = []
        now = self._clock.now()

        for item in sorted(urgent, key=member_sort_key):
            batch = single_item_batch(item, now)
            try:
                job_ids.append(self._claims.claim(batch, submitted_by))
            except ClaimError as exc:
                errors.append(f"Urgent item {item.item_id}: {exc}")
            except Exception as exc:
                errors.append(f"Failed to create urgent job for item {item.item_id}: {exc}")
                logger.exception(
                    "urgent_claim_failed", extra={"queue_item_id": str(item.item_id)},
                )

        logger.info(
            "urgent_escalation_completed",
            extra={
                "processed": len(urgent),
                "jobs_created": len(job_ids),
                "error_count": len(errors),
                "threshold": threshold,
            },
        )

        return UrgentEscalationResult(
            processed=len(urgent),
            jobs_created=len(job_ids),
            job_ids=tuple(job_ids),
            errors=tuple(errors),
        )
