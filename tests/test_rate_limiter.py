from __future__ import annotations

import pytest

from ghostpost.core.errors import RateLimited
from ghostpost.core.rate_limiter import SWEEP_INTERVAL_SECONDS, _RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_limit_applies_per_key_within_window():
    clock = FakeClock()
    limiter = _RateLimiter(clock=clock)
    limiter.check("slug:1.2.3.4", limit=2, window_seconds=60)
    limiter.check("slug:1.2.3.4", limit=2, window_seconds=60)
    with pytest.raises(RateLimited):
        limiter.check("slug:1.2.3.4", limit=2, window_seconds=60)
    limiter.check("slug:5.6.7.8", limit=2, window_seconds=60)

    clock.now += 61
    limiter.check("slug:1.2.3.4", limit=2, window_seconds=60)


def test_expired_windows_are_dropped():
    clock = FakeClock()
    limiter = _RateLimiter(clock=clock)
    for n in range(50):
        limiter.check(f"slug:10.0.0.{n}", limit=5, window_seconds=10)
    assert len(limiter._hits) == 50

    clock.now += SWEEP_INTERVAL_SECONDS + 1
    limiter.check("slug:10.0.1.1", limit=5, window_seconds=10)

    assert list(limiter._hits) == ["slug:10.0.1.1"]


def test_live_windows_survive_a_sweep():
    clock = FakeClock()
    limiter = _RateLimiter(clock=clock)
    limiter.check("login:a", limit=1, window_seconds=3600)

    clock.now += SWEEP_INTERVAL_SECONDS + 1
    with pytest.raises(RateLimited):
        limiter.check("login:a", limit=1, window_seconds=3600)
