"""Tests for the fixed-window rate limiter."""

from otp_service.api.rate_limit import FixedWindowRateLimiter


class _Clock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_limit_then_blocks():
    limiter = FixedWindowRateLimiter(limit=3, window_seconds=900, clock=_Clock())
    results = [limiter.check("10.0.0.1") for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].retry_after is not None and results[-1].retry_after > 0


def test_keys_are_independent():
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=_Clock())
    assert limiter.check("a").allowed
    assert not limiter.check("a").allowed
    assert limiter.check("b").allowed


def test_window_reset():
    clock = _Clock()
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)
    assert limiter.check("a").allowed
    assert not limiter.check("a").allowed

    clock.now += 60
    assert limiter.check("a").allowed


def test_reset_clears_counts():
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=_Clock())
    limiter.check("a")
    limiter.reset()
    assert limiter.check("a").allowed


def test_stale_buckets_are_evicted_when_window_rolls_over():
    clock = _Clock()
    limiter = FixedWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
    for i in range(1000):
        limiter.check(f"10.0.{i // 256}.{i % 256}")
    assert len(limiter._buckets) == 1000

    clock.now += 600
    limiter.check("192.168.1.1")
    assert len(limiter._buckets) == 1
    assert "192.168.1.1" in limiter._buckets


def test_keys_in_current_window_survive_eviction():
    clock = _Clock(1_000_000.0)  # window start 999_960
    limiter = FixedWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
    limiter.check("old")
    clock.now += 60
    limiter.check("a")
    limiter.check("b")
    assert set(limiter._buckets) == {"a", "b"}
