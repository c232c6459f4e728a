# storefront/config/redis.py
"""Redis configuration and connection setup"""
import redis
from typing import Optional

from storefront.config.settings import get_settings

settings = get_settings()

# Redis connection pool
_redis_pool: Optional[redis.ConnectionPool] = None


def get_redis_pool() -> redis.ConnectionPool:
    """Get or create Redis connection pool"""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            retry_on_timeout=True,
            decode_responses=True,
        )
    return _redis_pool


def get_redis() -> redis.Redis:
    """Get Redis client from pool"""
    return redis.Redis(connection_pool=get_redis_pool())


# Redis key patterns for different data types
class RedisKeys:
    """Redis key patterns for consistent naming"""

    # Support chat
    SUPPORT_CONVERSATION_CHANNEL = "support.conversation.{conversation_uuid}"
    SUPPORT_CONVERSATION_LOCK = "support:lock:{scope}"
    SUPPORT_SLA_ALERT = "support:sla-alert:conversation:{conversation_id}"

    # Rate limiting
    RATE_LIMIT_DEEPSEEK = "ratelimit:deepseek:chat:{window}"

    # Catalog sync claims (prefix comes from settings)
    CATALOG_CLAIM = "{prefix}{pid}"
    CATALOG_CLAIM_OWNER = "{prefix}owner:{owner}"
