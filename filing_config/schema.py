"""
Scheduler configuration schema.

Defines the typed settings the scheduler runs with.  YAML files are parsed
into these types by the loader; services receive a ``SchedulerSettings``
instance and never read files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_URGENT_PRIORITY_THRESHOLD = 8
DEFAULT_PRIORITY = 5
DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_BASE_DELAY_MINUTES = 30
DEFAULT_SUBMISSION_WINDOW = "daily_batch"


@dataclass(frozen=True)
class SchedulerSettings:
    """Scheduling policy and driver cadence.

    ``portal_limits`` maps jurisdiction code to the maximum number of records
    a single batch may contain.  Jurisdictions without an entry (here or in
    the portal_limits table) use ``default_max_batch_size``.
    """

    urgent_priority_threshold: int = DEFAULT_URGENT_PRIORITY_THRESHOLD
    default_priority: int = DEFAULT_PRIORITY
    default_max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay_minutes: int = DEFAULT_RETRY_BASE_DELAY_MINUTES
    default_submission_window: str = DEFAULT_SUBMISSION_WINDOW
    scheduling_interval_seconds: int = 60
    retry_interval_seconds: int = 300
    submitted_by: str = "system"
    portal_limits: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.default_max_batch_size <= 0:
            raise ValueError(
                f"default_max_batch_size must be positive: {self.default_max_batch_size}"
            )
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0: {self.max_attempts}")
        if self.retry_base_delay_minutes <= 0:
            raise ValueError(
                "retry_base_delay_minutes must be positive: "
                f"{self.retry_base_delay_minutes}"
            )
        if self.scheduling_interval_seconds <= 0 or self.retry_interval_seconds <= 0:
            raise ValueError("driver intervals must be positive")
        for code, size in self.portal_limits.items():
            if not isinstance(size, int) or size <= 0:
                raise ValueError(
                    f"portal limit for {code} must be a positive integer: {size!r}"
                )
