import pytest
from starlette.requests import Request

import app.core.rate_limit as rate_limit
from app.core.exceptions import TooManyRequests
from app.core.rate_limit import HybridCounterStore, RateLimiter, counter_store


def _request(ip: str = "10.0.0.1", forwarded: str | None = None) -> Request:
    headers = []
    if forwarded:
        headers.append((b"x-forwarded-for", forwarded.encode()))
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/auth/nonce",
        "headers": headers,
        "client": (ip, 12345),
    })


@pytest.fixture(autouse=True)
def clean_counters():
    counter_store.reset()
    yield
    counter_store.reset()


class TestHybridCounterStore:
    def test_singleton(self):
        assert HybridCounterStore() is counter_store

    def test_memory_fallback_without_redis(self):
        assert counter_store.redis_connect() is None
        assert counter_store.incr("k", 60) == 1
        assert counter_store.incr("k", 60) == 2
        assert counter_store.incr("other", 60) == 1

    def test_memory_window_expires(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr(rate_limit.time, "time", lambda: now[0])

        counter_store.incr("k", 60)
        counter_store.incr("k", 60)
        now[0] += 61

        assert counter_store.incr("k", 60) == 1


class TestRateLimiter:
    def test_blocks_after_limit(self):
        limiter = RateLimiter("test", limit=3, window_seconds=60)

        for _ in range(3):
            limiter(_request())
        with pytest.raises(TooManyRequests):
            limiter(_request())

    def test_limits_per_ip(self):
        limiter = RateLimiter("test", limit=1, window_seconds=60)

        limiter(_request("10.0.0.1"))
        limiter(_request("10.0.0.2"))
        with pytest.raises(TooManyRequests):
            limiter(_request("10.0.0.1"))

    def test_forwarded_for_ignored_by_default(self):
        limiter = RateLimiter("test", limit=1, window_seconds=60)

        limiter(_request("10.0.0.1", forwarded="203.0.113.7"))
        with pytest.raises(TooManyRequests):
            limiter(_request("10.0.0.1", forwarded="203.0.113.8"))

    def test_forwarded_for_behind_trusted_proxy(self, monkeypatch):
        monkeypatch.setattr(rate_limit.settings, "TRUST_PROXY_HEADERS", True)
        limiter = RateLimiter("test", limit=1, window_seconds=60)

        limiter(_request("10.0.0.1", forwarded="203.0.113.7, 10.0.0.1"))
        limiter(_request("10.0.0.1", forwarded="203.0.113.8"))
        with pytest.raises(TooManyRequests):
            limiter(_request("10.0.0.9", forwarded="203.0.113.7"))

    def test_disabled(self, monkeypatch):
        monkeypatch.setattr(rate_limit.settings, "RATE_LIMIT_ENABLED", False)
        limiter = RateLimiter("test", limit=1, window_seconds=60)

        for _ in range(5):
            limiter(_request())
