"""
filing_queue.models -- ORM models for queue persistence.

Architecture: filing_queue/models. Imports from filing_kernel.db.base only.
"""

from filing_queue.models.queue import (
    PortalLimitModel,
    QueueItemModel,
    SubmissionJobModel,
)

__all__ = [
    "PortalLimitModel",
    "QueueItemModel",
    "SubmissionJobModel",
]
