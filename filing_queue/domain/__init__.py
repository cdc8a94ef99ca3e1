"""
filing_queue.domain -- Pure types and policy functions for the submission queue.

ZERO I/O.  All types are frozen dataclasses.
"""

from filing_queue.domain.types import (
    BatchGroup,
    BatchPlan,
    ClaimRunResult,
    JobStatus,
    QueueItem,
    QueueItemStatus,
    QueueStatistics,
    RequeueResult,
    RetryDecision,
    SchedulingPassResult,
    SubmissionBatch,
    SubmissionJob,
    UrgentEscalationResult,
)

__all__ = [
    "BatchGroup",
    "BatchPlan",
    "ClaimRunResult",
    "JobStatus",
    "QueueItem",
    "QueueItemStatus",
    "QueueStatistics",
    "RequeueResult",
    "RetryDecision",
    "SchedulingPassResult",
    "SubmissionBatch",
    "SubmissionJob",
    "UrgentEscalationResult",
]
