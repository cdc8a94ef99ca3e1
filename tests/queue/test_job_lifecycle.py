"""
Tests for JobLifecycleService -- start / complete / fail transitions used by
the downstream submitter, and their effect on member queue items.
"""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from filing_kernel.exceptions import InvalidJobTransitionError, JobNotFoundError
from filing_queue.domain.types import JobStatus, QueueItemStatus
from filing_queue.models import QueueItemModel

NOW = datetime(2026, 2, 1, 12, 0, 0)


@pytest.fixture
def lifecycle(orchestrator):
    return orchestrator.lifecycle


@pytest.fixture
def job_id(orchestrator, make_items):
    make_items(3)
    result = orchestrator.scheduler.run_scheduling_pass()
    assert result.jobs_created == 1
    return result.job_ids[0]


def _members(session_factory, job_id):
    session = session_factory()
    try:
        rows = session.execute(
            select(QueueItemModel)
            .where(QueueItemModel.assigned_job_id == job_id)
            .order_by(QueueItemModel.id)
        ).scalars().all()
        return tuple(r.to_dto() for r in rows)
    finally:
        session.close()


class TestQueries:
    def test_list_pending_jobs(self, lifecycle, job_id):
        jobs = lifecycle.list_pending_jobs()
        assert [j.job_id for j in jobs] == [job_id]
        assert lifecycle.list_pending_jobs(limit=0) == ()

    def test_get_job(self, lifecycle, job_id):
        job = lifecycle.get_job(job_id)
        assert job.status is JobStatus.PENDING
        assert job.record_count == 3

    def test_get_unknown_job(self, lifecycle):
        with pytest.raises(JobNotFoundError):
            lifecycle.get_job(uuid4())


class TestStart:
    def test_start_moves_job_and_members(self, lifecycle, job_id, session_factory):
        assert lifecycle.start_job(job_id) is True

        job = lifecycle.get_job(job_id)
        assert job.status is JobStatus.IN_PROGRESS
        assert job.started_at == NOW
        members = _members(session_factory, job_id)
        assert len(members) == 3
        assert all(m.status is QueueItemStatus.IN_PROGRESS for m in members)

    def test_second_start_loses(self, lifecycle, job_id):
        assert lifecycle.start_job(job_id) is True
        assert lifecycle.start_job(job_id) is False

    def test_start_unknown_job(self, lifecycle):
        with pytest.raises(JobNotFoundError):
            lifecycle.start_job(uuid4())


class TestComplete:
    def test_complete_submits_members(self, lifecycle, job_id, session_factory, clock):
        lifecycle.start_job(job_id)
        clock.advance(120)

        job = lifecycle.complete_job(job_id, confirmation_number="CONF-123")

        assert job.status is JobStatus.COMPLETED
        assert job.completed_at == NOW + timedelta(seconds=120)
        assert job.confirmation_number == "CONF-123"
        members = _members(session_factory, job_id)
        assert all(m.status is QueueItemStatus.SUBMITTED for m in members)
        assert all(m.assigned_job_id == job_id for m in members)

    def test_complete_requires_started_job(self, lifecycle, job_id):
        with pytest.raises(InvalidJobTransitionError) as exc_info:
            lifecycle.complete_job(job_id)
        assert exc_info.value.from_status == "pending"
        assert exc_info.value.to_status == "completed"


class TestFail:
    def test_fail_marks_members_failed(self, lifecycle, job_id, session_factory):
        lifecycle.start_job(job_id)

        job = lifecycle.fail_job(job_id, "portal rejected file")

        assert job.status is JobStatus.FAILED
        assert job.error_message == "portal rejected file"
        assert job.retry_count == 1
        members = _members(session_factory, job_id)
        assert len(members) == 3
        for m in members:
            assert m.status is QueueItemStatus.FAILED
            assert m.failure_count == 1
            assert m.last_failure_reason == "portal rejected file"

    def test_fail_pending_job(self, lifecycle, job_id):
        assert lifecycle.fail_job(job_id, "credentials expired").status is JobStatus.FAILED

    def test_fail_completed_job_rejected(self, lifecycle, job_id):
        lifecycle.start_job(job_id)
        lifecycle.complete_job(job_id)
        with pytest.raises(InvalidJobTransitionError):
            lifecycle.fail_job(job_id, "late error")

    def test_failed_items_return_through_retry_pass(
        self, orchestrator, lifecycle, job_id, session_factory,
    ):
        lifecycle.start_job(job_id)
        lifecycle.fail_job(job_id, "timeout")

        requeue = orchestrator.scheduler.requeue_failures()
        assert requeue.requeued == 3

        # requeued items are claimable again on the very next pass
        result = orchestrator.scheduler.run_scheduling_pass()
        assert result.jobs_created == 1
        assert result.job_ids[0] != job_id
        assert len(_members(session_factory, result.job_ids[0])) == 3
