"""Tests for the per-client scan limiter."""

from fraudlens.api.security import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestRateLimiter:
    def test_limit_within_window(self):
        limiter = RateLimiter(clock=FakeClock())
        assert limiter.is_allowed("1.2.3.4", limit=2, window=60) == (True, 1)
        assert limiter.is_allowed("1.2.3.4", limit=2, window=60) == (True, 0)
        assert limiter.is_allowed("1.2.3.4", limit=2, window=60) == (False, 0)

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.is_allowed("1.2.3.4", limit=1, window=60)
        assert limiter.get_retry_after("1.2.3.4", window=60) == 60

        clock.advance(60)
        assert limiter.is_allowed("1.2.3.4", limit=1, window=60) == (True, 0)

    def test_expired_windows_are_pruned(self):
        clock = FakeClock()
        limiter = RateLimiter(prune_interval=60, clock=clock)
        for i in range(50):
            limiter.is_allowed(f"10.0.0.{i}", limit=5, window=30)
        assert limiter.tracked_clients == 50

        clock.advance(61)
        limiter.is_allowed("192.168.0.1", limit=5, window=30)
        assert limiter.tracked_clients == 1

    def test_active_windows_survive_pruning(self):
        clock = FakeClock()
        limiter = RateLimiter(prune_interval=60, clock=clock)
        limiter.is_allowed("old", limit=5, window=100)
        clock.advance(70)
        limiter.is_allowed("new", limit=5, window=100)

        assert limiter.tracked_clients == 2
        assert limiter.is_allowed("old", limit=5, window=100) == (True, 3)

    def test_no_pruning_before_interval(self):
        clock = FakeClock()
        limiter = RateLimiter(prune_interval=60, clock=clock)
        limiter.is_allowed("a", limit=5, window=10)
        clock.advance(20)
        limiter.is_allowed("b", limit=5, window=10)
        assert limiter.tracked_clients == 2
