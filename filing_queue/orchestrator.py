"""
QueueOrchestrator -- DI container for the submission scheduler.

Contract:
    Composes the portal limit provider, claim manager, escalation, retry,
    statistics, and job lifecycle services around one session factory,
    one Clock, and one SchedulerSettings, and builds the SubmissionScheduler
    on top of them.  Single place where scheduler dependencies are wired.

Invariants enforced:
    - Clock injection: every service receives the same Clock.
    - Settings injection: services never load configuration themselves.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy.orm import Session

from filing_config.schema import SchedulerSettings
from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.logging_config import get_logger
from filing_queue.scheduler import SubmissionScheduler
from filing_queue.services.batching import BatchPlanner
from filing_queue.services.claim import ClaimTransactionManager
from filing_queue.services.driver import SchedulingDriver
from filing_queue.services.escalation import UrgentEscalationService
from filing_queue.services.job_lifecycle import JobLifecycleService
from filing_queue.services.portal_limits import PortalLimitProvider
from filing_queue.services.retry import RetryBackoffService
from filing_queue.services.statistics import QueueStatisticsService

logger = get_logger("queue.orchestrator")


class QueueOrchestrator:
    """DI container for the submission scheduler.

    Non-goals:
        - Does NOT start the driver automatically -- caller decides.
        - Does NOT create tables or engines -- see filing_kernel.db.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        scheduler: SubmissionScheduler,
        lifecycle: JobLifecycleService,
        portal_limits: PortalLimitProvider,
        clock: Clock,
        settings: SchedulerSettings,
    ) -> None:
        self._session_factory = session_factory
        self._scheduler = scheduler
        self._lifecycle = lifecycle
        self._portal_limits = portal_limits
        self._clock = clock
        self._settings = settings

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_session_factory(
        cls,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        settings: SchedulerSettings | None = None,
    ) -> QueueOrchestrator:
        """Create a fully wired orchestrator.

        Args:
            session_factory: Callable returning a new Session; every claim
                and snapshot read gets its own.
            clock: Optional clock for deterministic testing.
            settings: Optional settings.  If None, the built-in defaults
                are used (callers normally pass ``get_active_settings()``).
        """
        effective_clock = clock or SystemClock()
        effective_settings = settings or SchedulerSettings()

        portal_limits = PortalLimitProvider(effective_settings)
        claims = ClaimTransactionManager(session_factory, effective_clock)
        scheduler = SubmissionScheduler(
            session_factory=session_factory,
            planner=BatchPlanner(portal_limits, effective_clock),
            claims=claims,
            escalation=UrgentEscalationService(
                session_factory, claims, effective_clock, effective_settings,
            ),
            retry=RetryBackoffService(
                session_factory, effective_clock, effective_settings,
            ),
            statistics=QueueStatisticsService(session_factory, effective_settings),
            clock=effective_clock,
            settings=effective_settings,
        )

        logger.debug(
            "queue_orchestrator_created",
            extra={
                "urgent_priority_threshold": effective_settings.urgent_priority_threshold,
                "default_max_batch_size": effective_settings.default_max_batch_size,
            },
        )

        return cls(
            session_factory=session_factory,
            scheduler=scheduler,
            lifecycle=JobLifecycleService(session_factory, effective_clock),
            portal_limits=portal_limits,
            clock=effective_clock,
            settings=effective_settings,
        )

    # -------------------------------------------------------------------------
    # Driver
    # -------------------------------------------------------------------------

    def create_driver(self, submitted_by: str | None = None) -> SchedulingDriver:
        """Create a SchedulingDriver around this orchestrator's scheduler."""
        return SchedulingDriver(
            scheduler=self._scheduler,
            clock=self._clock,
            settings=self._settings,
            submitted_by=submitted_by,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def scheduler(self) -> SubmissionScheduler:
        return self._scheduler

    @property
    def lifecycle(self) -> JobLifecycleService:
        return self._lifecycle

    @property
    def portal_limits(self) -> PortalLimitProvider:
        return self._portal_limits

    @property
    def settings(self) -> SchedulerSettings:
        return self._settings

    @property
    def clock(self) -> Clock:
        return self._clock
