"""Tests for the fixed-window mutation rate limiter."""

from shortlinks.core.rate_limit import (
    InMemoryRateLimiter,
    default_mutation_limits,
    rate_limit_key,
)


class TestInMemoryRateLimiter:
    """Fixed-window counting per identifier."""

    def test_allows_up_to_max_then_denies(self, rate_limiter):
        results = [rate_limiter.allow("create-link:A", 3, 60000) for _ in range(4)]
        assert results == [True, True, True, False]

    def test_denied_requests_do_not_increment(self, rate_limiter):
        for _ in range(5):
            rate_limiter.allow("k", 2, 60000)
        assert rate_limiter.remaining("k", 2) == 0
        assert rate_limiter._store["k"].count == 2

    def test_new_window_after_expiry(self, rate_limiter, clock):
        for _ in range(3):
            rate_limiter.allow("k", 3, 60000)
        assert not rate_limiter.allow("k", 3, 60000)

        clock.advance(60001)

        assert rate_limiter.allow("k", 3, 60000)
        assert rate_limiter.remaining("k", 3) == 2

    def test_window_still_active_at_reset_time(self, rate_limiter, clock):
        rate_limiter.allow("k", 1, 1000)
        clock.advance(1000)
        assert not rate_limiter.allow("k", 1, 1000)

    def test_identifiers_are_independent(self, rate_limiter):
        assert rate_limiter.allow("create-link:A", 1, 60000)
        assert not rate_limiter.allow("create-link:A", 1, 60000)
        assert rate_limiter.allow("create-link:B", 1, 60000)
        assert rate_limiter.allow("update-link:A", 1, 60000)

    def test_remaining_and_reset(self, rate_limiter):
        assert rate_limiter.remaining("k", 5) == 5
        rate_limiter.allow("k", 5, 60000)
        rate_limiter.allow("k", 5, 60000)
        assert rate_limiter.remaining("k", 5) == 3

        rate_limiter.reset("k")
        assert rate_limiter.remaining("k", 5) == 5

    def test_sweep_removes_only_expired_entries(self, clock):
        rolls = iter([1.0, 1.0, 0.0])
        limiter = InMemoryRateLimiter(sweep_probability=0.5, clock=clock, rand=lambda: next(rolls))

        limiter.allow("old", 10, 1000)
        clock.advance(500)
        limiter.allow("fresh", 10, 1000)
        assert len(limiter) == 2

        clock.advance(600)
        limiter.allow("trigger", 10, 1000)

        assert "old" not in limiter._store
        assert "fresh" in limiter._store
        assert "trigger" in limiter._store

    def test_sweep_does_not_change_decisions(self, clock):
        limiter = InMemoryRateLimiter(sweep_probability=1.0, clock=clock)
        assert limiter.allow("k", 1, 1000)
        assert not limiter.allow("k", 1, 1000)
        clock.advance(1001)
        assert limiter.allow("k", 1, 1000)


def test_rate_limit_keys_are_scoped_per_operation():
    assert rate_limit_key("create", "user_1") == "create-link:user_1"
    assert rate_limit_key("create", "user_1") != rate_limit_key("delete", "user_1")


def test_default_mutation_limits():
    limits = default_mutation_limits()
    assert limits["create"].max_requests == 10
    assert limits["update"].max_requests == 20
    assert limits["delete"].max_requests == 20
    assert all(limit.window_ms == 60000 for limit in limits.values())
