import pytest

from timely.errors import RateLimitedError
from timely.services.rate_limit import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_blocks_after_max_hits(clock):
    limiter = RateLimiter(3, 60, "slow down", clock=clock)
    for _ in range(3):
        limiter.hit("1.2.3.4")
    with pytest.raises(RateLimitedError) as exc:
        limiter.hit("1.2.3.4")
    assert exc.value.detail == "slow down"
    assert 0 < exc.value.retry_after <= 61


def test_keys_are_independent(clock):
    limiter = RateLimiter(1, 60, "slow down", clock=clock)
    limiter.hit("a")
    limiter.hit("b")
    with pytest.raises(RateLimitedError):
        limiter.hit("a")


def test_window_expiry_resets(clock):
    limiter = RateLimiter(1, 60, "slow down", clock=clock)
    limiter.hit("a")
    clock.now += 60
    limiter.hit("a")


def test_forgive_returns_a_hit(clock):
    limiter = RateLimiter(2, 60, "slow down", clock=clock)
    limiter.hit("a")
    limiter.hit("a")
    limiter.forgive("a")
    limiter.hit("a")
    with pytest.raises(RateLimitedError):
        limiter.hit("a")


def test_forgive_unknown_key_is_noop(clock):
    limiter = RateLimiter(1, 60, "slow down", clock=clock)
    limiter.forgive("nobody")
    limiter.hit("nobody")


def test_expired_window_resets_before_purge(clock):
    limiter = RateLimiter(1, 60, "slow down", clock=clock)
    clock.now = 1010
    limiter.hit("a")
    clock.now = 1060
    limiter.hit("b")  # purge runs here; "a" is only 50s old and stays
    clock.now = 1075
    limiter.hit("a")
    with pytest.raises(RateLimitedError):
        limiter.hit("a")


def test_purge_runs_once_per_window(clock):
    limiter = RateLimiter(1, 60, "slow down", clock=clock)
    limiter.hit("a")
    clock.now = 1030
    limiter.hit("b")
    clock.now = 1065
    limiter.hit("c")
    assert set(limiter._windows) == {"b", "c"}

    clock.now = 1100
    limiter.hit("d")
    # "b" expired at 1090 but the next purge is not due until 1125
    assert set(limiter._windows) == {"b", "c", "d"}

    clock.now = 1125
    limiter.hit("e")
    assert set(limiter._windows) == {"d", "e"}
