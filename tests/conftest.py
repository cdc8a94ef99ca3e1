"""
Pytest fixtures for the filing scheduler test suite.

Provides:
- In-memory SQLite engines with the real ORM models
- A DeterministicClock fixed at 2026-02-01 12:00 (naive, SQLite strips tzinfo)
- Queue item factories
- Structured log capture
"""

import json
import logging
from datetime import datetime
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from filing_config.schema import SchedulerSettings
from filing_kernel.db.base import Base
from filing_kernel.domain.clock import DeterministicClock
from filing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from filing_queue.domain.types import QueueItemStatus
from filing_queue.models import PortalLimitModel, QueueItemModel
from filing_queue.orchestrator import QueueOrchestrator

NOW = datetime(2026, 2, 1, 12, 0, 0)
DUE = datetime(2026, 2, 1, 11, 0, 0)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture filing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, scheduler):
            scheduler.run_scheduling_pass()
            logs = captured_logs()
            assert any(r["message"] == "scheduling_pass_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("filing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    # Use naive datetimes for SQLite compatibility (SQLite strips tzinfo)
    return DeterministicClock(fixed_time=NOW)


@pytest.fixture
def settings():
    return SchedulerSettings()


@pytest.fixture
def orchestrator(session_factory, clock, settings):
    return QueueOrchestrator.from_session_factory(
        session_factory, clock=clock, settings=settings,
    )


# =============================================================================
# Data factories
# =============================================================================


def add_queue_items(
    session_factory,
    count: int = 1,
    *,
    jurisdiction_code: str = "CA",
    organization_id: str = "org-1",
    priority: int | None = 5,
    status: QueueItemStatus = QueueItemStatus.READY,
    submission_window: str = "daily_batch",
    scheduled_submission_at: datetime | None = DUE,
    failure_count: int = 0,
    next_retry_at: datetime | None = None,
    assigned_job_id: UUID | None = None,
) -> list[UUID]:
    """Insert ``count`` queue items and return their ids in insertion order."""
    session = session_factory()
    ids: list[UUID] = []
    try:
        for _ in range(count):
            item_id = uuid4()
            session.add(QueueItemModel(
                id=item_id,
                jurisdiction_code=jurisdiction_code,
                organization_id=organization_id,
                source_record_id=f"rec-{item_id.hex[:12]}",
                status=status.value,
                priority=priority,
                submission_window=submission_window,
                scheduled_submission_at=scheduled_submission_at,
                failure_count=failure_count,
                next_retry_at=next_retry_at,
                assigned_job_id=assigned_job_id,
            ))
            ids.append(item_id)
        session.commit()
    finally:
        session.close()
    return ids


def add_portal_limit(session_factory, jurisdiction_code: str, max_batch_size: int | None):
    session = session_factory()
    try:
        session.add(PortalLimitModel(
            jurisdiction_code=jurisdiction_code,
            max_batch_size=max_batch_size,
        ))
        session.commit()
    finally:
        session.close()


@pytest.fixture
def make_items(session_factory):
    """Factory fixture bound to the test's session factory."""

    def _make(count: int = 1, **kwargs) -> list[UUID]:
        return add_queue_items(session_factory, count, **kwargs)

    return _make


@pytest.fixture
def make_portal_limit(session_factory):
    def _make(jurisdiction_code: str, max_batch_size: int | None) -> None:
        add_portal_limit(session_factory, jurisdiction_code, max_batch_size)

    return _make
