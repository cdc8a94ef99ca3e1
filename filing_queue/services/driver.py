"""
SchedulingDriver -- in-process polling driver for the scheduler.

Contract:
    Wakes up periodically and runs the scheduling pass every
    ``scheduling_interval_seconds`` and the retry pass every
    ``retry_interval_seconds`` (two independent cadences).  ``tick()`` is
    public so tests can drive it with a DeterministicClock.

Invariants enforced:
    - All due-time decisions use the injected Clock.
    - Graceful shutdown: ``stop()`` signals the loop and waits for the
      current pass to finish.

Non-goals:
    - NOT a distributed scheduler.  Several drivers may run against the
      same store at once; the claim transaction keeps them correct.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from filing_config.schema import SchedulerSettings
from filing_kernel.domain.clock import Clock, SystemClock
from filing_kernel.logging_config import get_logger
from filing_queue.domain.types import SchedulingPassResult
from filing_queue.scheduler import SubmissionScheduler

logger = get_logger("queue.driver")

# How often the background loop checks whether a pass is due.
_POLL_SECONDS = 1.0


@dataclass(frozen=True)
class DriverStatus:
    running: bool
    passes_run: int
    retry_passes_run: int
    last_pass: SchedulingPassResult | None = None


class SchedulingDriver:
    """Background thread running scheduling and retry passes."""

    def __init__(
        self,
        scheduler: SubmissionScheduler,
        clock: Clock | None = None,
        settings: SchedulerSettings | None = None,
        submitted_by: str | None = None,
    ):
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._settings = settings or SchedulerSettings()
        self._submitted_by = submitted_by or self._settings.submitted_by
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

        self._next_pass_at: datetime | None = None
        self._next_retry_at: datetime | None = None
        self._passes_run = 0
        self._retry_passes_run = 0
        self._last_pass: SchedulingPassResult | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> tuple[bool, bool]:
        """Run whichever passes are due.

        Returns (scheduling pass ran, retry pass ran).
        """
        with self._lock:
            now = self._clock.now()
            ran_pass = False
            ran_retry = False

            if self._next_pass_at is None or now >= self._next_pass_at:
                self._last_pass = self._scheduler.run_scheduling_pass(self._submitted_by)
                self._passes_run += 1
                self._next_pass_at = now + timedelta(
                    seconds=self._settings.scheduling_interval_seconds,
                )
                ran_pass = True

            if self._next_retry_at is None or now >= self._next_retry_at:
                self._scheduler.requeue_failures(now)
                self._retry_passes_run += 1
                self._next_retry_at = now + timedelta(
                    seconds=self._settings.retry_interval_seconds,
                )
                ran_retry = True

            return ran_pass, ran_retry

    def start(self) -> None:
        """Start the driver in a background daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="filing-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "driver_started",
            extra={
                "scheduling_interval": self._settings.scheduling_interval_seconds,
                "retry_interval": self._settings.retry_interval_seconds,
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current pass to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info(
            "driver_stopped",
            extra={
                "passes_run": self._passes_run,
                "retry_passes_run": self._retry_passes_run,
            },
        )

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> DriverStatus:
        return DriverStatus(
            running=self.is_running,
            passes_run=self._passes_run,
            retry_passes_run=self._retry_passes_run,
            last_pass=self._last_pass,
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("driver_tick_exception")
            self._stop_event.wait(timeout=_POLL_SECONDS)
