"""QueueStatisticsService -- fresh aggregate counts for monitoring."""

from __future__ import annotations

from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filing_config.schema import SchedulerSettings
from filing_kernel.exceptions import StoreUnavailableError
from filing_kernel.logging_config import get_logger
from filing_queue.domain.statistics import aggregate_statistics
from filing_queue.domain.types import QueueStatistics
from filing_queue.selectors.queue_selector import QueueSelector

logger = get_logger("queue.statistics")


class QueueStatisticsService:
    """Computes statistics from one SELECT per call; nothing is cached."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings: SchedulerSettings | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or SchedulerSettings()

    def get_queue_statistics(self) -> QueueStatistics:
        """
        Raises:
            StoreUnavailableError: If the snapshot read fails.
        """
        session = self._session_factory()
        try:
            rows = QueueSelector.for_settings(session, self._settings).statistics_rows()
        except SQLAlchemyError as exc:
            logger.error("statistics_read_failed", exc_info=True)
            raise StoreUnavailableError("statistics read", str(exc)) from exc
        finally:
            session.close()

        stats = aggregate_statistics(rows, self._settings.urgent_priority_threshold)
        logger.debug(
            "queue_statistics_computed",
            extra={"total": stats.total, "urgent_count": stats.urgent_count},
        )
        return stats
