# storefront/utils/rate_limiter.py
"""Fixed-window rate limiter backed by Redis"""
import time


class RedisRateLimiter:
    """
    Counts attempts per time window.

    Only successful calls are counted (hit), but every call checks
    too_many_attempts first.
    """

    def __init__(self, redis_client, key_pattern: str, max_attempts: int, period_seconds: int):
        self.redis = redis_client
        self.key_pattern = key_pattern
        self.max_attempts = max_attempts
        self.period_seconds = max(1, period_seconds)

    def _key(self) -> str:
        window = int(time.time()) // self.period_seconds
        return self.key_pattern.format(window=window)

    def too_many_attempts(self) -> bool:
        if self.max_attempts <= 0:
            return False
        current = self.redis.get(self._key())
        return current is not None and int(current) >= self.max_attempts

    def hit(self) -> int:
        key = self._key()
        count = self.redis.incr(key)
        if count == 1:
            self.redis.expire(key, self.period_seconds)
        return int(count)
