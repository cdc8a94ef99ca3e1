"""
filing_queue.domain.types -- Pure frozen dataclasses for the submission queue.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - A QueueItem's ``assigned_job_id`` is set iff its status is one of
      ASSIGNED_STATUSES (failed items may still carry the reference of the
      job that failed until the retry pass clears it).
    - A SubmissionBatch's ``record_count`` equals ``len(queue_item_ids)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


# =============================================================================
# Status enums
# =============================================================================


class QueueItemStatus(str, Enum):
    """Lifecycle status of a single filing obligation."""

    READY = "ready"  # Claimable by the scheduler
    PENDING_VALIDATION = "pending_validation"  # Waiting on upstream checks
    QUEUED = "queued"  # Claimed into a job, not yet started
    IN_PROGRESS = "in_progress"  # Downstream submitter working on it
    SUBMITTED = "submitted"  # Accepted by the government portal
    FAILED = "failed"  # Downstream reported an error
    CANCELLED = "cancelled"  # Retries exhausted (terminal)


class JobStatus(str, Enum):
    """Lifecycle status of a submission job."""

    PENDING = "pending"  # Created by a claim, waiting for the submitter
    IN_PROGRESS = "in_progress"  # Submitter started it
    COMPLETED = "completed"
    FAILED = "failed"


ASSIGNED_STATUSES = frozenset({
    QueueItemStatus.QUEUED,
    QueueItemStatus.IN_PROGRESS,
    QueueItemStatus.SUBMITTED,
})

# Items in these states no longer count as outstanding work.
TERMINAL_STATUSES = frozenset({
    QueueItemStatus.SUBMITTED,
    QueueItemStatus.CANCELLED,
})


# =============================================================================
# Queue and job DTOs
# =============================================================================


@dataclass(frozen=True)
class QueueItem:
    """Immutable snapshot of one pending filing obligation."""

    item_id: UUID
    jurisdiction_code: str
    organization_id: str
    source_record_id: str
    status: QueueItemStatus
    priority: int = 5  # Higher = more urgent
    submission_window: str = "daily_batch"
    scheduled_submission_at: datetime | None = None
    assigned_job_id: UUID | None = None
    failure_count: int = 0
    next_retry_at: datetime | None = None
    last_failure_reason: str | None = None


@dataclass(frozen=True)
class SubmissionJob:
    """Immutable snapshot of a unit of work handed to the downstream submitter.

    Membership (``source_record_ids`` / ``record_count``) never changes after
    the claim that created the job.
    """

    job_id: UUID
    jurisdiction_code: str
    organization_id: str
    batch_id: str
    source_record_ids: tuple[str, ...]
    record_count: int
    status: JobStatus
    submitted_by: str
    is_urgent: bool = False
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None
    retry_count: int = 0
    confirmation_number: str | None = None


# =============================================================================
# Grouping / batching DTOs
# =============================================================================


@dataclass(frozen=True)
class BatchGroup:
    """Homogeneous group of claimable items.

    Keyed by (jurisdiction, organization, submission window).  ``priority``
    is the maximum member priority.
    """

    jurisdiction_code: str
    organization_id: str
    submission_window: str
    items: tuple[QueueItem, ...]
    total_records: int
    priority: int

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.jurisdiction_code, self.organization_id, self.submission_window)


@dataclass(frozen=True)
class SubmissionBatch:
    """Candidate batch handed to the claim transaction manager."""

    batch_id: str
    jurisdiction_code: str
    organization_id: str
    queue_item_ids: tuple[UUID, ...]
    source_record_ids: tuple[str, ...]
    record_count: int
    priority: int
    submission_window: str = "daily_batch"
    is_urgent: bool = False


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ClaimRunResult:
    """Outcome of claiming a list of batches."""

    created: int
    job_ids: tuple[UUID, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class UrgentEscalationResult:
    """Outcome of one urgent escalation run."""

    processed: int
    jobs_created: int
    job_ids: tuple[UUID, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class BatchPlan:
    """Candidate batches for one pass plus non-fatal planning errors."""

    batches: tuple[SubmissionBatch, ...]
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class SchedulingPassResult:
    """Outcome of ``run_scheduling_pass``."""

    urgent_processed: int
    urgent_jobs_created: int
    groups_found: int
    batches_created: int
    jobs_created: int
    job_ids: tuple[UUID, ...] = ()
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "urgent_processed": self.urgent_processed,
            "urgent_jobs_created": self.urgent_jobs_created,
            "groups_found": self.groups_found,
            "batches_created": self.batches_created,
            "jobs_created": self.jobs_created,
            "job_ids": [str(j) for j in self.job_ids],
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class RequeueResult:
    """Outcome of ``requeue_failures``."""

    requeued: int
    cancelled: int
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class RetryDecision:
    """Pure backoff decision for one failed item."""

    cancel: bool
    next_retry_at: datetime | None = None
    delay_minutes: int = 0


@dataclass(frozen=True)
class QueueStatistics:
    """Point-in-time aggregate counts over all queue items."""

    total: int
    ready: int
    pending_validation: int
    queued: int
    in_progress: int
    submitted: int
    failed: int
    cancelled: int
    by_jurisdiction: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    urgent_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "ready": self.ready,
            "pending_validation": self.pending_validation,
            "queued": self.queued,
            "in_progress": self.in_progress,
            "submitted": self.submitted,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "by_jurisdiction": dict(self.by_jurisdiction),
            "by_priority": dict(self.by_priority),
            "urgent_count": self.urgent_count,
        }
