"""
ClaimTransactionManager -- atomic batch -> job claims.

Contract:
    ``claim(batch)`` creates a PENDING job and moves every batch member from
    ready/unassigned to queued/assigned in ONE transaction, or changes
    nothing at all.

Algorithm (optimistic concurrency, no in-process locks):
    1. INSERT the job row.
    2. Conditional UPDATE of the members:
           SET status='queued', assigned_job_id=<job>
           WHERE id IN (<members>) AND status='ready'
             AND assigned_job_id IS NULL
    3. Compare the affected row count with the member count.
    4. Equal -> COMMIT and return the job id.
    5. Less -> ROLLBACK (the job row included) and raise PartialClaimError.

    Selection happened earlier on a snapshot; step 2 re-validates the
    precondition at write time.  A contended batch is rejected whole, never
    shrunk to its still-available subset, so a job's record set always
    matches what was planned.

Failure modes:
    - PartialClaimError: another worker claimed some members first.
    - EmptyBatchError: the batch has no members.
    - StoreUnavailableError: the database failed or timed out.
"""

from __future__ import annotations

from typing import Callable, Sequence
from uuid import UUID, uuid4

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.exceptions import (
    ClaimError,
    EmptyBatchError,
    PartialClaimError,
    StoreUnavailableError,
)
from filing_kernel.logging_config import LogContext, get_logger
from filing_queue.domain.types import (
    ClaimRunResult,
    JobStatus,
    QueueItemStatus,
    SubmissionBatch,
)
from filing_queue.models.queue import QueueItemModel, SubmissionJobModel

logger = get_logger("queue.claim")


class ClaimTransactionManager:
    """The only writer of ``assigned_job_id`` and the ready -> queued transition.

    Each claim runs on its own session from ``session_factory`` so a failed
    claim never disturbs batches that already committed.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def claim(self, batch: SubmissionBatch, submitted_by: str = "system") -> UUID:
        """Atomically create a job for ``batch`` and claim all its members.

        Returns:
            The new job's id.

        Raises:
            EmptyBatchError: If the batch has no members.
            PartialClaimError: If fewer than all members could be claimed.
            StoreUnavailableError: If the store fails during the transaction.
        """
        expected = len(batch.queue_item_ids)
        if expected == 0:
            raise EmptyBatchError(batch.batch_id)

        now = self._clock.now()
        job_id = uuid4()
        session = self._session_factory()

        with LogContext.bind(batch_id=batch.batch_id, job_id=str(job_id)):
            try:
                job = SubmissionJobModel(
                    id=job_id,
                    jurisdiction_code=batch.jurisdiction_code,
                    organization_id=batch.organization_id,
                    batch_id=batch.batch_id,
                    source_record_ids=list(batch.source_record_ids),
                    record_count=expected,
                    status=JobStatus.PENDING.value,
                    submitted_by=submitted_by,
                    is_urgent=batch.is_urgent,
                    retry_count=0,
                    created_at=now,
                    updated_at=now,
                )
                session.add(job)
                session.flush()

                result = session.execute(
                    update(QueueItemModel)
                    .where(
                        QueueItemModel.id.in_(batch.queue_item_ids),
                        QueueItemModel.status == QueueItemStatus.READY.value,
                        QueueItemModel.assigned_job_id.is_(None),
                    )
                    .values(
                        status=QueueItemStatus.QUEUED.value,
                        assigned_job_id=job_id,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                claimed = result.rowcount

                if claimed != expected:
                    session.rollback()
                    logger.warning(
                        "claim_partial",
                        extra={"claimed": claimed, "expected": expected},
                    )
                    raise PartialClaimError(batch.batch_id, claimed, expected)

                session.commit()

            except ClaimError:
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("claim_store_error", exc_info=True)
                raise StoreUnavailableError("claim", str(exc)) from exc
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

            logger.info(
                "claim_committed",
                extra={
                    "jurisdiction_code": batch.jurisdiction_code,
                    "organization_id": batch.organization_id,
                    "record_count": expected,
                    "priority": batch.priority,
                    "is_urgent": batch.is_urgent,
                },
            )
            return job_id

    def claim_all(
        self,
        batches: Sequence[SubmissionBatch],
        submitted_by: str = "system",
    ) -> ClaimRunResult:
        """Claim batches in order, collecting job ids and error messages.

        A failure affects only its own batch.
        """
        job_ids: list[UUID] = []
        errors: list[str] = []

        for batch in batches:
            try:
                job_ids.append(self.claim(batch, submitted_by))
            except ClaimError as exc:
                errors.append(str(exc))
            except Exception as exc:
                message = f"Failed to create job for batch {batch.batch_id}: {exc}"
                errors.append(message)
                logger.exception("claim_failed", extra={"batch_id": batch.batch_id})

        return ClaimRunResult(
            created=len(job_ids),
            job_ids=tuple(job_ids),
            errors=tuple(errors),
        )
