from __future__ import annotations

# redis backed request rate limiting
import logging
import time
from threading import Lock
from typing import Dict, Optional, Tuple

from fastapi import Request
from redis import Connection, ConnectionPool, Redis, SSLConnection
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import TooManyRequests

logger = logging.getLogger(__name__)


class HybridCounterStore:
    """Fixed-window hit counters in Redis, with in-memory fallback"""

    _instance: Optional['HybridCounterStore'] = None
    _lock = Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if hasattr(self, '_initialized') and self._initialized:
            return
        self.pool: Optional[ConnectionPool] = None
        if settings.REDIS_HOST is not None and settings.REDIS_HOST.strip() != "":
            self.pool = ConnectionPool(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                socket_connect_timeout=0.05,
                socket_timeout=5,
                retry_on_timeout=False,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                connection_class=SSLConnection if settings.REDIS_SSL else Connection
            )
        self.redis_available = False
        self.memory_counters: Dict[str, Tuple[int, float]] = {}
        self._memory_lock = Lock()
        self._last_redis_check: Optional[float] = None
        self._initialized = True

    def redis_connect(self) -> Optional[Redis]:
        """Connect to Redis, with a cooldown when unavailable"""
        if self.pool is None:
            return None

        if self.redis_available:
            try:
                rc = Redis(connection_pool=self.pool)
                if rc.ping():
                    return rc
                self.redis_available = False
                self._last_redis_check = time.time()
            except RedisError:
                self.redis_available = False
                self._last_redis_check = time.time()
            logger.warning("redis unavailable, rate limiting falls back to memory")
            return None

        # If Redis is unavailable, only check every REDIS_RECHECK_INTERVAL seconds
        now = time.time()
        if self._last_redis_check is not None:
            if now - self._last_redis_check < settings.REDIS_RECHECK_INTERVAL:
                return None

        self._last_redis_check = now
        try:
            rc = Redis(connection_pool=self.pool)
            if rc.ping():
                self.redis_available = True
                return rc
        except RedisError:
            pass

        return None

    def incr(self, key: str, window_seconds: int) -> int:
        """Increment the counter for ``key`` and return the new count"""
        count = self._incr_redis(key, window_seconds)
        if count is not None:
            return count
        return self._incr_memory(key, window_seconds)

    def _incr_redis(self, key: str, window_seconds: int) -> Optional[int]:
        rc = self.redis_connect()
        if rc is None:
            return None
        try:
            count = int(rc.incr(key))
            if count == 1:
                rc.expire(key, window_seconds)
            return count
        except RedisError:
            return None
        finally:
            rc.close()

    def _incr_memory(self, key: str, window_seconds: int) -> int:
        now = time.time()
        with self._memory_lock:
            # drop finished windows so the dict does not grow without bound
            expired_keys = [k for k, (_, exp) in self.memory_counters.items() if exp <= now]
            for k in expired_keys:
                self.memory_counters.pop(k, None)

            count, expires_at = self.memory_counters.get(key, (0, now + window_seconds))
            count += 1
            self.memory_counters[key] = (count, expires_at)
            return count

    def reset(self) -> None:
        with self._memory_lock:
            self.memory_counters.clear()


# Global singleton instance
counter_store = HybridCounterStore()


def _client_ip(request: Request) -> str:
    # X-Forwarded-For is client controlled unless a trusted proxy sets it
    forwarded = request.headers.get("x-forwarded-for") if settings.TRUST_PROXY_HEADERS else None
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


class RateLimiter:
    """
    FastAPI dependency limiting each client IP to ``limit`` requests per window.

    Example:
        @router.get("/nonce", dependencies=[Depends(strict_rate_limit)])
    """

    def __init__(self, name: str, limit: int, window_seconds: int, store: HybridCounterStore = counter_store):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store

    def __call__(self, request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return

        window = int(time.time() // self.window_seconds)
        ip = _client_ip(request)
        key = f"ratelimit:{self.name}:{ip}:{window}"
        count = self.store.incr(key, self.window_seconds)
        if count > self.limit:
            logger.warning("rate limit %s exceeded by %s", self.name, ip)
            raise TooManyRequests()


# nonce issuance is the cheapest endpoint to hammer
strict_rate_limit = RateLimiter("strict", settings.STRICT_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS)
standard_rate_limit = RateLimiter("standard", settings.STANDARD_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS)
