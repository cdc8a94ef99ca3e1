"""Tests for QueueStatisticsService -- fresh counts on every call."""

import pytest
from sqlalchemy.exc import OperationalError

from filing_config.schema import SchedulerSettings
from filing_kernel.exceptions import StoreUnavailableError
from filing_queue.domain.types import QueueItemStatus
from filing_queue.services.statistics import QueueStatisticsService


@pytest.fixture
def statistics(session_factory, settings):
    return QueueStatisticsService(session_factory, settings)


class TestQueueStatisticsService:
    def test_empty_queue(self, statistics):
        stats = statistics.get_queue_statistics()
        assert stats.total == 0
        assert stats.to_dict()["by_jurisdiction"] == {}

    def test_counts_reflect_current_rows(self, statistics, make_items):
        make_items(3, jurisdiction_code="CA", priority=5)
        make_items(2, jurisdiction_code="NY", priority=9)
        make_items(1, jurisdiction_code="NY", priority=9, status=QueueItemStatus.SUBMITTED)
        make_items(1, jurisdiction_code="TX", status=QueueItemStatus.FAILED)

        stats = statistics.get_queue_statistics()

        assert stats.total == 7
        assert stats.ready == 5
        assert stats.submitted == 1
        assert stats.failed == 1
        assert stats.by_jurisdiction == {"CA": 3, "NY": 3, "TX": 1}
        assert stats.by_priority == {"5": 4, "9": 3}
        assert stats.urgent_count == 2

    def test_null_priority_counted_at_configured_default(self, session_factory, make_items):
        make_items(1, priority=None)
        make_items(1, priority=3)

        stats = QueueStatisticsService(
            session_factory, SchedulerSettings(default_priority=8),
        ).get_queue_statistics()

        assert stats.by_priority == {"3": 1, "8": 1}
        assert stats.urgent_count == 1

    def test_not_cached(self, statistics, make_items):
        make_items(1)
        assert statistics.get_queue_statistics().total == 1
        make_items(2)
        assert statistics.get_queue_statistics().total == 3

    def test_store_failure(self, session_factory, settings):
        def broken_factory():
            session = session_factory()

            def _boom(*args, **kwargs):
                raise OperationalError("SELECT", {}, Exception("gone"))

            session.execute = _boom
            return session

        with pytest.raises(StoreUnavailableError):
            QueueStatisticsService(broken_factory, settings).get_queue_statistics()
