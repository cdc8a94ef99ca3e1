"""Services for the submission queue (write side).

``SchedulingDriver`` lives in ``filing_queue.services.driver`` and is not
re-exported here because it depends on ``filing_queue.scheduler``.
"""

from filing_queue.services.batching import BatchPlanner
from filing_queue.services.claim import ClaimTransactionManager
from filing_queue.services.escalation import UrgentEscalationService
from filing_queue.services.job_lifecycle import JobLifecycleService
from filing_queue.services.portal_limits import PortalLimitProvider
from filing_queue.services.retry import RetryBackoffService
from filing_queue.services.statistics import QueueStatisticsService

__all__ = [
    "BatchPlanner",
    "ClaimTransactionManager",
    "JobLifecycleService",
    "PortalLimitProvider",
    "QueueStatisticsService",
    "RetryBackoffService",
    "UrgentEscalationService",
]
