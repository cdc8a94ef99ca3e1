"""
ORM models for the submission queue.

Contract:
    QueueItemModel, SubmissionJobModel, and PortalLimitModel persist queue
    items, the jobs they are claimed into, and per-jurisdiction batch limits.
    Queue items and jobs have ``to_dto()`` methods returning frozen DTOs.

Architecture: filing_queue/models. Imports from filing_kernel.db.base only
    (plus the DTO types for ``to_dto``).

Invariants enforced:
    - ``assigned_job_id`` is written only by the claim transaction (set) and
      the retry pass (cleared).
    - ``submission_jobs.source_record_ids`` / ``record_count`` are written
      once, at claim time.
    - ``portal_limits.jurisdiction_code`` is UNIQUE.
    - ``submission_jobs.batch_id`` is indexed but not UNIQUE: a second claim
      of the same batch must reach the member UPDATE and fail on its row
      count, not on the job INSERT.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from filing_config.schema import DEFAULT_PRIORITY, DEFAULT_SUBMISSION_WINDOW
from filing_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from filing_queue.domain.types import QueueItem, SubmissionJob


class SubmissionJobModel(TrackedBase):
    """Persistent submission job (immutable membership, never deleted)."""

    __tablename__ = "submission_jobs"

    __table_args__ = (
        Index("ix_submission_jobs_status", "status"),
        Index("ix_submission_jobs_jurisdiction", "jurisdiction_code"),
        Index("ix_submission_jobs_created_at", "created_at"),
        Index("ix_submission_jobs_batch_id", "batch_id"),
    )

    jurisdiction_code: Mapped[str] = mapped_column(String(10), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False)
    batch_id: Mapped[str] = mapped_column(String(200), nullable=False)
    source_record_ids: Mapped[list] = mapped_column(JSON, nullable=False)
    record_count: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    submitted_by: Mapped[str] = mapped_column(String(100), nullable=False)
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    confirmation_number: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def to_dto(self) -> SubmissionJob:
        from filing_queue.domain.types import JobStatus, SubmissionJob

        return SubmissionJob(
            job_id=self.id,
            jurisdiction_code=self.jurisdiction_code,
            organization_id=self.organization_id,
            batch_id=self.batch_id,
            source_record_ids=tuple(self.source_record_ids or ()),
            record_count=self.record_count,
            status=JobStatus(self.status),
            submitted_by=self.submitted_by,
            is_urgent=self.is_urgent,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
            error_message=self.error_message,
            retry_count=self.retry_count,
            confirmation_number=self.confirmation_number,
        )


class QueueItemModel(TrackedBase):
    """One pending filing obligation."""

    __tablename__ = "submission_queue"

    __table_args__ = (
        Index("ix_submission_queue_status_job", "status", "assigned_job_id"),
        Index("ix_submission_queue_priority", "priority"),
        Index("ix_submission_queue_jurisdiction", "jurisdiction_code"),
        Index("ix_submission_queue_next_retry", "next_retry_at"),
    )

    jurisdiction_code: Mapped[str] = mapped_column(String(10), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False)
    source_record_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[int | None] = mapped_column(
        Integer, default=DEFAULT_PRIORITY, nullable=True,
    )
    submission_window: Mapped[str | None] = mapped_column(
        String(50), default=DEFAULT_SUBMISSION_WINDOW, nullable=True,
    )
    scheduled_submission_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    assigned_job_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("submission_jobs.id"),
        nullable=True,
    )
    failure_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    next_retry_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def to_dto(
        self,
        default_priority: int = DEFAULT_PRIORITY,
        default_submission_window: str = DEFAULT_SUBMISSION_WINDOW,
    ) -> QueueItem:
        """NULL priority and submission window read as the given defaults."""
        from filing_queue.domain.types import QueueItem, QueueItemStatus

        return QueueItem(
            item_id=self.id,
            jurisdiction_code=self.jurisdiction_code,
            organization_id=self.organization_id,
            source_record_id=self.source_record_id,
            status=QueueItemStatus(self.status),
            priority=self.priority if self.priority is not None else default_priority,
            submission_window=self.submission_window or default_submission_window,
            scheduled_submission_at=self.scheduled_submission_at,
            assigned_job_id=self.assigned_job_id,
            failure_count=self.failure_count or 0,
            next_retry_at=self.next_retry_at,
            last_failure_reason=self.last_failure_reason,
        )


class PortalLimitModel(TrackedBase):
    """Per-jurisdiction maximum batch size (read-only for the scheduler)."""

    __tablename__ = "portal_limits"

    jurisdiction_code: Mapped[str] = mapped_column(
        String(10), nullable=False, unique=True,
    )
    max_batch_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
