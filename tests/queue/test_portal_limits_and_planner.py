"""
Tests for PortalLimitProvider and BatchPlanner.

Portal limits resolve table -> configuration -> default (100); a failure for
one group is reported and the remaining groups are still planned.
"""

from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from filing_config.schema import SchedulerSettings
from filing_kernel.domain.clock import DeterministicClock
from filing_kernel.exceptions import StoreUnavailableError
from filing_queue.domain.grouping import group_queue_items
from filing_queue.domain.types import QueueItem, QueueItemStatus
from filing_queue.services.batching import BatchPlanner
from filing_queue.services.portal_limits import PortalLimitProvider

NOW = datetime(2026, 2, 1, 12, 0, 0)


def _items(count: int, jurisdiction_code: str = "CA", priority: int = 5) -> list[QueueItem]:
    result = []
    for _ in range(count):
        item_id = uuid4()
        result.append(QueueItem(
            item_id=item_id,
            jurisdiction_code=jurisdiction_code,
            organization_id="org-1",
            source_record_id=f"rec-{item_id.hex[:8]}",
            status=QueueItemStatus.READY,
            priority=priority,
            scheduled_submission_at=NOW,
        ))
    return result


class _BrokenProvider(PortalLimitProvider):
    """Fails for one jurisdiction, as a store outage would."""

    def __init__(self, broken: str):
        super().__init__()
        self._broken = broken

    def resolve(self, jurisdiction_code, stored=None):
        if jurisdiction_code == self._broken:
            raise StoreUnavailableError("portal limit lookup", "connection reset")
        return super().resolve(jurisdiction_code, stored)


# =============================================================================
# PortalLimitProvider
# =============================================================================


class TestPortalLimitProvider:
    def test_default_without_configuration(self):
        assert PortalLimitProvider().resolve("CA") == 100

    def test_configured_limit(self):
        provider = PortalLimitProvider(SchedulerSettings(portal_limits={"CA": 25}))
        assert provider.resolve("CA") == 25
        assert provider.resolve("NY") == 100

    def test_table_overrides_configuration(self, make_portal_limit, db_session):
        make_portal_limit("CA", 10)
        provider = PortalLimitProvider(SchedulerSettings(portal_limits={"CA": 25}))
        assert provider.resolve("CA", provider.load_stored(db_session)) == 10

    @pytest.mark.parametrize("stored", [None, 0, -5])
    def test_non_positive_table_limit_falls_back(self, make_portal_limit, db_session, stored):
        make_portal_limit("CA", stored)
        provider = PortalLimitProvider()
        assert provider.resolve("CA", provider.load_stored(db_session)) == 100

    def test_default_logged_with_code(self, captured_logs):
        PortalLimitProvider().resolve("ZZ")
        records = [r for r in captured_logs() if r["message"] == "portal_limit_defaulted"]
        assert records
        assert records[0]["jurisdiction_code"] == "ZZ"

    def test_store_failure_raises_store_unavailable(self, db_session, monkeypatch):
        def _boom(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "execute", _boom)
        with pytest.raises(StoreUnavailableError):
            PortalLimitProvider().load_stored(db_session)


# =============================================================================
# BatchPlanner
# =============================================================================


class TestBatchPlanner:
    def test_plan_respects_limits(self):
        provider = PortalLimitProvider(SchedulerSettings(portal_limits={"NY": 3}))
        planner = BatchPlanner(provider, DeterministicClock(NOW))
        groups = group_queue_items(_items(250, "CA") + _items(7, "NY"))

        plan = planner.plan(groups)

        ca = [b.record_count for b in plan.batches if b.jurisdiction_code == "CA"]
        ny = [b.record_count for b in plan.batches if b.jurisdiction_code == "NY"]
        assert ca == [100, 100, 50]
        assert ny == [3, 3, 1]
        assert plan.errors == ()

    def test_batches_ordered_by_priority(self):
        planner = BatchPlanner(PortalLimitProvider(), DeterministicClock(NOW))
        groups = group_queue_items(_items(2, "CA", priority=3) + _items(1, "TX", priority=7))

        plan = planner.plan(groups)
        assert [b.jurisdiction_code for b in plan.batches] == ["TX", "CA"]

    def test_failed_group_skipped_others_planned(self):
        planner = BatchPlanner(_BrokenProvider("NY"), DeterministicClock(NOW))
        groups = group_queue_items(_items(5, "CA") + _items(5, "NY"))

        plan = planner.plan(groups)

        assert [b.jurisdiction_code for b in plan.batches] == ["CA"]
        assert len(plan.errors) == 1
        assert plan.errors[0].startswith("Failed to plan batches for group NY/org-1/daily_batch")

    def test_stored_limits_read_once_per_plan(self, make_portal_limit, db_session, monkeypatch):
        make_portal_limit("NY", 2)
        statements = []
        execute = db_session.execute

        def _counting(stmt, *args, **kwargs):
            statements.append(stmt)
            return execute(stmt, *args, **kwargs)

        monkeypatch.setattr(db_session, "execute", _counting)
        planner = BatchPlanner(PortalLimitProvider(), DeterministicClock(NOW))
        groups = group_queue_items(_items(3, "CA") + _items(3, "NY") + _items(3, "TX"))

        plan = planner.plan(groups, db_session)

        assert len(statements) == 1
        ny = [b.record_count for b in plan.batches if b.jurisdiction_code == "NY"]
        assert ny == [2, 1]
        assert plan.errors == ()

    def test_store_failure_plans_nothing(self, db_session, monkeypatch, captured_logs):
        rollbacks = []

        def _boom(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("server closed the connection"))

        monkeypatch.setattr(db_session, "execute", _boom)
        monkeypatch.setattr(db_session, "rollback", lambda: rollbacks.append(True))
        planner = BatchPlanner(PortalLimitProvider(), DeterministicClock(NOW))

        plan = planner.plan(group_queue_items(_items(5, "CA") + _items(5, "NY")), db_session)

        assert plan.batches == ()
        assert len(plan.errors) == 1
        assert plan.errors[0].startswith("Failed to load portal limits:")
        assert rollbacks == [True]
        assert any(r["message"] == "portal_limits_unavailable" for r in captured_logs())

    def test_no_groups_skips_store(self, db_session, monkeypatch):
        def _boom(*args, **kwargs):
            raise AssertionError("store should not be read")

        monkeypatch.setattr(db_session, "execute", _boom)
        planner = BatchPlanner(PortalLimitProvider(), DeterministicClock(NOW))
        assert planner.plan([], db_session).batches == ()
