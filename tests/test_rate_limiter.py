"""
LogPulse AI - Rate Limiter Tests
================================

Unit tests for the trailing-window quota.
"""

from datetime import timedelta

import pytest

from logpulse.core.rate_limiter import Admit, Deny, RateLimiter
from logpulse_shared.constants import Severity
from logpulse_shared.schemas.events import AnalysisEvent


def record(store, identity, created_at):
    """Append a minimal event for ``identity`` at ``created_at``."""
    return store.append(AnalysisEvent(
        identity=identity,
        input_text="Error: something broke",
        diagnosis="<p>diagnosis</p>",
        severity=Severity.WARNING,
        title="Error: something broke",
        created_at=created_at,
    ))


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.fixture
    def limiter(self, store):
        return RateLimiter(store, max_requests=3, window=timedelta(hours=24))

    def test_admits_fresh_identity(self, limiter, clock):
        """Test that an identity with no history is admitted."""
        decision = limiter.check_and_admit("10.0.0.1", clock())

        assert decision == Admit(remaining=3)

    def test_denies_at_quota(self, limiter, store, clock):
        """Test that the (Q+1)-th request in the window is denied with (Q, W)."""
        for _ in range(3):
            assert isinstance(limiter.check_and_admit("10.0.0.1", clock()), Admit)
            record(store, "10.0.0.1", clock())
            clock.advance(minutes=5)

        decision = limiter.check_and_admit("10.0.0.1", clock())

        assert isinstance(decision, Deny)
        assert decision.limit == 3
        assert decision.window == timedelta(hours=24)
        assert decision.window_hours == 24

    def test_identities_are_independent(self, limiter, store, clock):
        """Test that one identity's usage does not affect another."""
        for _ in range(3):
            record(store, "10.0.0.1", clock())

        assert isinstance(limiter.check_and_admit("10.0.0.1", clock()), Deny)
        assert isinstance(limiter.check_and_admit("10.0.0.2", clock()), Admit)

    def test_old_events_leave_the_window(self, limiter, store, clock):
        """Test that events older than the window stop counting."""
        start = clock()
        for _ in range(3):
            record(store, "10.0.0.1", start)

        clock.advance(hours=24, seconds=1)

        assert limiter.check_and_admit("10.0.0.1", clock()) == Admit(remaining=3)

    def test_window_start_is_inclusive(self, limiter, store, clock):
        """Test that an event exactly at now - window still counts."""
        start = clock()
        for _ in range(3):
            record(store, "10.0.0.1", start)

        clock.advance(hours=24)

        assert isinstance(limiter.check_and_admit("10.0.0.1", clock()), Deny)

    def test_remaining_is_read_only(self, limiter, store, clock):
        """Test that remaining() reports without admitting."""
        record(store, "10.0.0.1", clock())

        assert limiter.remaining("10.0.0.1", clock()) == 2
        assert limiter.remaining("10.0.0.1", clock()) == 2
        assert store.count_since("10.0.0.1", clock() - timedelta(hours=24)) == 1

    def test_remaining_never_negative(self, limiter, store, clock):
        """Test that over-quota history clamps remaining at zero."""
        for _ in range(5):
            record(store, "10.0.0.1", clock())

        assert limiter.remaining("10.0.0.1", clock()) == 0

    def test_rejects_invalid_configuration(self, store):
        """Test constructor validation."""
        with pytest.raises(ValueError):
            RateLimiter(store, max_requests=0)
        with pytest.raises(ValueError):
            RateLimiter(store, window=timedelta(0))

    def test_rejects_partial_hour_window(self, store):
        """Test that a window the denial message cannot state in hours is refused."""
        with pytest.raises(ValueError):
            RateLimiter(store, window=timedelta(minutes=30))
        with pytest.raises(ValueError):
            RateLimiter(store, window=timedelta(hours=1, minutes=30))

        assert RateLimiter(store, window=timedelta(hours=2)).window_hours == 2
