"""Tests for filing_queue.domain.backoff -- pure retry decisions."""

from datetime import datetime, timedelta

import pytest

from filing_queue.domain.backoff import backoff_delay_minutes, compute_retry_decision

NOW = datetime(2026, 2, 1, 12, 0, 0)


class TestBackoffDelay:
    @pytest.mark.parametrize("failures, minutes", [
        (0, 30), (1, 60), (2, 120), (3, 240), (4, 480),
    ])
    def test_doubles_per_failure(self, failures, minutes):
        assert backoff_delay_minutes(failures) == minutes

    def test_custom_base(self):
        assert backoff_delay_minutes(2, base_delay_minutes=10) == 40

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            backoff_delay_minutes(-1)


class TestRetryDecision:
    def test_schedules_next_retry(self):
        decision = compute_retry_decision(2, NOW)
        assert decision.cancel is False
        assert decision.delay_minutes == 120
        assert decision.next_retry_at == NOW + timedelta(minutes=120)

    @pytest.mark.parametrize("failures", [5, 6, 12])
    def test_cancels_at_ceiling(self, failures):
        decision = compute_retry_decision(failures, NOW)
        assert decision.cancel is True
        assert decision.next_retry_at is None

    def test_last_attempt_before_ceiling_is_retried(self):
        assert compute_retry_decision(4, NOW).cancel is False

    def test_custom_max_attempts(self):
        assert compute_retry_decision(2, NOW, max_attempts=2).cancel is True
