"""
Tests for UrgentEscalationService -- the priority bypass.

Urgent items (priority >= 8) are claimed one per job before any grouping,
independently of backlog size.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from filing_config.schema import SchedulerSettings
from filing_queue.domain.types import QueueItemStatus
from filing_queue.models import QueueItemModel, SubmissionJobModel
from filing_queue.services.claim import ClaimTransactionManager
from filing_queue.services.escalation import UrgentEscalationService

NOW = datetime(2026, 2, 1, 12, 0, 0)


@pytest.fixture
def escalation(session_factory, clock, settings):
    claims = ClaimTransactionManager(session_factory, clock)
    return UrgentEscalationService(session_factory, claims, clock, settings)


def _jobs(session_factory):
    session = session_factory()
    try:
        return [
            m.to_dto() for m in session.execute(select(SubmissionJobModel)).scalars().all()
        ]
    finally:
        session.close()


class TestUrgentEscalation:
    def test_no_urgent_items(self, escalation, make_items):
        make_items(3, priority=7)
        result = escalation.run()
        assert result.processed == 0
        assert result.jobs_created == 0
        assert result.errors == ()

    def test_one_job_per_urgent_item(self, escalation, make_items, session_factory):
        ids = make_items(3, priority=8, jurisdiction_code="NY")

        result = escalation.run("ops")

        assert result.processed == 3
        assert result.jobs_created == 3
        jobs = _jobs(session_factory)
        assert all(j.record_count == 1 for j in jobs)
        assert all(j.is_urgent for j in jobs)
        assert all(j.batch_id.startswith("urgent_NY_") for j in jobs)
        assert all(j.submitted_by == "ops" for j in jobs)
        assert {j.source_record_ids[0] for j in jobs} == {f"rec-{i.hex[:12]}" for i in ids}

    def test_urgent_item_bypasses_large_backlog(self, escalation, make_items, session_factory):
        (urgent,) = make_items(1, priority=9)
        backlog = make_items(500, priority=3)

        result = escalation.run()

        assert result.jobs_created == 1
        session = session_factory()
        try:
            item = session.get(QueueItemModel, urgent)
            assert item.status == QueueItemStatus.QUEUED.value
            assert item.assigned_job_id == result.job_ids[0]
            still_ready = session.execute(
                select(QueueItemModel.id).where(
                    QueueItemModel.status == QueueItemStatus.READY.value,
                )
            ).scalars().all()
        finally:
            session.close()
        assert set(still_ready) == set(backlog)

    def test_urgent_ignores_scheduled_time(self, escalation, make_items):
        make_items(1, priority=10, scheduled_submission_at=NOW + timedelta(days=3))
        assert escalation.run().jobs_created == 1

    def test_already_claimed_items_not_reprocessed(self, escalation, make_items):
        make_items(2, priority=9)
        escalation.run()

        second = escalation.run()
        assert second.processed == 0
        assert second.jobs_created == 0

    def test_custom_threshold(self, session_factory, clock, make_items):
        settings = SchedulerSettings(urgent_priority_threshold=6)
        claims = ClaimTransactionManager(session_factory, clock)
        service = UrgentEscalationService(session_factory, claims, clock, settings)
        make_items(1, priority=6)
        make_items(1, priority=5)

        assert service.run().jobs_created == 1

    def test_selection_failure_reported_not_raised(self, clock, settings):
        def broken_factory():
            raise RuntimeError("pool exhausted")

        claims = ClaimTransactionManager(broken_factory, clock)
        service = UrgentEscalationService(broken_factory, claims, clock, settings)

        result = service.run()

        assert result.processed == 0
        assert result.errors == (
            "Store unavailable during urgent item selection: pool exhausted",
        )

    def test_completion_logged(self, escalation, make_items, captured_logs):
        make_items(2, priority=9)
        escalation.run()

        record = next(
            r for r in captured_logs() if r["message"] == "urgent_escalation_completed"
        )
        assert record["processed"] == 2
        assert record["jobs_created"] == 2
        assert record["threshold"] == 8
