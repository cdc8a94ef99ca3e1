"""
JobLifecycleService -- the downstream submitter's view of a job.

Contract:
    The scheduler creates jobs; the downstream submitter (which delivers
    them to the government portal) moves them on with this service:

        pending --start_job--> in_progress --complete_job--> completed
                                           --fail_job------> failed

    Member queue items follow their job:
        queued -> in_progress -> submitted | failed (failure_count + 1)

    Job membership is never touched.  Failed items keep their job reference
    until the retry pass clears it.

Invariants enforced:
    - ``start_job`` is a conditional pending -> in_progress UPDATE, so two
      submitters polling the same job cannot both start it.
    - Every transition runs in one transaction covering the job and its
      members.

Failure modes:
    - JobNotFoundError: unknown job id.
    - InvalidJobTransitionError: transition not allowed from the job's status.
    - StoreUnavailableError: the database failed.
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.exceptions import (
    InvalidJobTransitionError,
    JobNotFoundError,
    StoreUnavailableError,
)
from filing_kernel.logging_config import get_logger
from filing_queue.domain.types import JobStatus, QueueItemStatus, SubmissionJob
from filing_queue.models.queue import QueueItemModel, SubmissionJobModel
from filing_queue.selectors.queue_selector import QueueSelector

logger = get_logger("queue.job_lifecycle")


class JobLifecycleService:
    """Start / complete / fail transitions for submission jobs."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_job(self, job_id: UUID) -> SubmissionJob:
        """
        Raises:
            JobNotFoundError: If job_id does not exist.
        """
        session = self._session_factory()
        try:
            job = QueueSelector(session).get_job(job_id)
        finally:
            session.close()
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    def list_pending_jobs(self, limit: int | None = None) -> tuple[SubmissionJob, ...]:
        session = self._session_factory()
        try:
            return QueueSelector(session).pending_jobs(limit)
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def start_job(self, job_id: UUID) -> bool:
        """Claim a pending job for processing.

        Returns False if the job is no longer pending (another submitter
        started it first).

        Raises:
            JobNotFoundError: If job_id does not exist.
        """
        now = self._clock.now()

        def _apply(session: Session) -> bool:
            self._require_job(session, job_id)
            result = session.execute(
                update(SubmissionJobModel)
                .where(
                    SubmissionJobModel.id == job_id,
                    SubmissionJobModel.status == JobStatus.PENDING.value,
                )
                .values(
                    status=JobStatus.IN_PROGRESS.value,
                    started_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return False
            self._move_members(
                session, job_id, QueueItemStatus.QUEUED, QueueItemStatus.IN_PROGRESS, now,
            )
            return True

        started = self._in_transaction("start_job", _apply)
        logger.info("job_started" if started else "job_already_started",
                    extra={"job_id": str(job_id)})
        return started

    def complete_job(
        self, job_id: UUID, confirmation_number: str | None = None,
    ) -> SubmissionJob:
        """Mark an in-progress job completed and its members submitted.

        Raises:
            JobNotFoundError: If job_id does not exist.
            InvalidJobTransitionError: If the job is not in progress.
        """
        now = self._clock.now()

        def _apply(session: Session) -> SubmissionJob:
            job = self._require_job(session, job_id)
            self._require_status(job, JobStatus.IN_PROGRESS, JobStatus.COMPLETED)
            job.status = JobStatus.COMPLETED.value
            job.completed_at = now
            job.confirmation_number = confirmation_number
            job.updated_at = now
            session.execute(
                update(QueueItemModel)
                .where(
                    QueueItemModel.assigned_job_id == job_id,
                    QueueItemModel.status == QueueItemStatus.IN_PROGRESS.value,
                )
                .values(
                    status=QueueItemStatus.SUBMITTED.value,
                    submitted_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            session.flush()
            return job.to_dto()

        dto = self._in_transaction("complete_job", _apply)
        logger.info(
            "job_completed",
            extra={"job_id": str(job_id), "record_count": dto.record_count},
        )
        return dto

    def fail_job(self, job_id: UUID, error_message: str) -> SubmissionJob:
        """Mark a pending or in-progress job failed and its members failed.

        Each member's failure_count is incremented; the retry pass decides
        whether the item is retried or cancelled.

        Raises:
            JobNotFoundError: If job_id does not exist.
            InvalidJobTransitionError: If the job already finished.
        """
        now = self._clock.now()

        def _apply(session: Session) -> SubmissionJob:
            job = self._require_job(session, job_id)
            self._require_status(
                job, (JobStatus.PENDING, JobStatus.IN_PROGRESS), JobStatus.FAILED,
            )
            job.status = JobStatus.FAILED.value
            job.completed_at = now
            job.error_message = error_message
            job.retry_count = (job.retry_count or 0) + 1
            job.updated_at = now
            session.execute(
                update(QueueItemModel)
                .where(
                    QueueItemModel.assigned_job_id == job_id,
                    QueueItemModel.status.in_([
                        QueueItemStatus.QUEUED.value,
                        QueueItemStatus.IN_PROGRESS.value,
                    ]),
                )
                .values(
                    status=QueueItemStatus.FAILED.value,
                    failure_count=QueueItemModel.failure_count + 1,
                    last_failure_reason=error_message,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            session.flush()
            return job.to_dto()

        dto = self._in_transaction("fail_job", _apply)
        logger.warning(
            "job_failed",
            extra={"job_id": str(job_id), "error_message": error_message},
        )
        return dto

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _in_transaction(self, operation: str, fn):
        session = self._session_factory()
        try:
            result = fn(session)
            session.commit()
            return result
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreUnavailableError(operation, str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _require_job(session: Session, job_id: UUID) -> SubmissionJobModel:
        job = session.get(SubmissionJobModel, job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    @staticmethod
    def _require_status(
        job: SubmissionJobModel,
        allowed: JobStatus | tuple[JobStatus, ...],
        target: JobStatus,
    ) -> None:
        allowed = allowed if isinstance(allowed, tuple) else (allowed,)
        if job.status not in {s.value for s in allowed}:
            raise InvalidJobTransitionError(str(job.id), job.status, target.value)

    @staticmethod
    def _move_members(
        session: Session,
        job_id: UUID,
        from_status: QueueItemStatus,
        to_status: QueueItemStatus,
        now,
    ) -> None:
        session.execute(
            update(QueueItemModel)
            .where(
                QueueItemModel.assigned_job_id == job_id,
                QueueItemModel.status == from_status.value,
            )
            .values(status=to_status.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
