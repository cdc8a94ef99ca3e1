"""
Module: filing_queue.selectors.queue_selector
Responsibility: Read-only snapshot queries over the submission queue, jobs,
    and portal limits.
Architecture position: Queue > Selectors.  May import from models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      call add(), delete(), flush(), or commit().
    - DTO return convention: selectors return frozen DTOs, not ORM instances.
    - Session ownership: the caller owns the session and its transaction
      scope.  Each method issues a single SELECT, so every result is one
      consistent snapshot.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from filing_config.schema import (
    DEFAULT_PRIORITY,
    DEFAULT_SUBMISSION_WINDOW,
    SchedulerSettings,
)
from filing_queue.domain.statistics import StatisticsRow
from filing_queue.domain.types import (
    JobStatus,
    QueueItem,
    QueueItemStatus,
    SubmissionJob,
)
from filing_queue.models.queue import (
    PortalLimitModel,
    QueueItemModel,
    SubmissionJobModel,
)


class QueueSelector:
    """
    Snapshot reads for the scheduler.

    Non-goals:
        - Does NOT lock rows.  Claiming re-validates at write time.
    """

    def __init__(
        self,
        session: Session,
        default_priority: int = DEFAULT_PRIORITY,
        default_submission_window: str = DEFAULT_SUBMISSION_WINDOW,
    ):
        self.session = session
        self._default_priority = default_priority
        self._default_submission_window = default_submission_window

    @classmethod
    def for_settings(cls, session: Session, settings: SchedulerSettings) -> QueueSelector:
        """Selector reading NULL priority and window as the configured defaults."""
        return cls(session, settings.default_priority, settings.default_submission_window)

    def _priority(self):
        return func.coalesce(QueueItemModel.priority, self._default_priority)

    def _items(self, stmt) -> tuple[QueueItem, ...]:
        rows = self.session.execute(stmt).scalars().all()
        return tuple(
            r.to_dto(self._default_priority, self._default_submission_window)
            for r in rows
        )

    def claimable_items(
        self,
        as_of: datetime,
        below_priority: int | None = None,
    ) -> tuple[QueueItem, ...]:
        """Ready, unassigned items whose scheduled time has arrived.

        Items with no scheduled time are not due.  When ``below_priority``
        is given, items at or above it are left to the escalation path.
        """
        stmt = select(QueueItemModel).where(
            QueueItemModel.status == QueueItemStatus.READY.value,
            QueueItemModel.assigned_job_id.is_(None),
            QueueItemModel.scheduled_submission_at.is_not(None),
            QueueItemModel.scheduled_submission_at <= as_of,
        )
        if below_priority is not None:
            stmt = stmt.where(self._priority() < below_priority)
        stmt = stmt.order_by(
            self._priority().desc(),
            QueueItemModel.scheduled_submission_at.asc(),
        )
        return self._items(stmt)

    def urgent_items(self, threshold: int) -> tuple[QueueItem, ...]:
        """Ready, unassigned items with priority >= ``threshold``."""
        stmt = (
            select(QueueItemModel)
            .where(
                QueueItemModel.status == QueueItemStatus.READY.value,
                QueueItemModel.assigned_job_id.is_(None),
                self._priority() >= threshold,
            )
            .order_by(self._priority().desc())
        )
        return self._items(stmt)

    def due_failures(self, as_of: datetime) -> tuple[QueueItem, ...]:
        """Failed items whose next retry time has arrived (NULL counts as due)."""
        stmt = (
            select(QueueItemModel)
            .where(
                QueueItemModel.status == QueueItemStatus.FAILED.value,
                or_(
                    QueueItemModel.next_retry_at.is_(None),
                    QueueItemModel.next_retry_at <= as_of,
                ),
            )
            .order_by(QueueItemModel.id)
        )
        return self._items(stmt)

    def statistics_rows(self) -> list[StatisticsRow]:
        """(status, jurisdiction_code, priority) for every queue item.

        NULL priority reads as the default, as in every other query.
        """
        rows = self.session.execute(
            select(
                QueueItemModel.status,
                QueueItemModel.jurisdiction_code,
                self._priority(),
            )
        ).all()
        return [tuple(r) for r in rows]

    def portal_limits(self) -> dict[str, int | None]:
        """All configured portal limits keyed by jurisdiction code."""
        rows = self.session.execute(
            select(PortalLimitModel.jurisdiction_code, PortalLimitModel.max_batch_size)
        ).all()
        return {code: size for code, size in rows}

    def get_job(self, job_id: UUID) -> SubmissionJob | None:
        model = self.session.get(SubmissionJobModel, job_id)
        return model.to_dto() if model is not None else None

    def pending_jobs(self, limit: int | None = None) -> tuple[SubmissionJob, ...]:
        """Pending jobs, oldest first."""
        stmt = (
            select(SubmissionJobModel)
            .where(SubmissionJobModel.status == JobStatus.PENDING.value)
            .order_by(SubmissionJobModel.created_at.asc(), SubmissionJobModel.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = self.session.execute(stmt).scalars().all()
        return tuple(r.to_dto() for r in rows)
