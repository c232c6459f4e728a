# storefront/services/catalog/claim_service.py
"""
Lease-style claims on supplier product ids.

Catalog sync workers claim a pid before processing it so only one worker
handles it at a time. A claim is a Redis key holding "token|owner" with a
TTL; each owner also keeps a set of the pids it holds so a crashed worker's
claims can be released in bulk.
"""
import hmac
import logging
import os
import secrets
import socket
from typing import Optional

from storefront.config.redis import RedisKeys
from storefront.config.settings import get_settings

logger = logging.getLogger(__name__)


def default_owner() -> str:
    return get_settings().WORKER_OWNER_ID or f"{socket.gethostname()}:{os.getpid()}"


class ProductClaimService:

    def __init__(self, redis_client, prefix: Optional[str] = None, ttl_seconds: Optional[int] = None):
        self.redis = redis_client
        settings = get_settings()
        self.prefix = prefix or settings.CATALOG_CLAIM_PREFIX
        self.ttl_seconds = ttl_seconds or settings.CATALOG_CLAIM_TTL_SECONDS

    def _key(self, pid: str) -> str:
        return RedisKeys.CATALOG_CLAIM.format(prefix=self.prefix, pid=pid)

    def _owner_key(self, owner: str) -> str:
        return RedisKeys.CATALOG_CLAIM_OWNER.format(prefix=self.prefix, owner=owner)

    @staticmethod
    def _split(value) -> tuple:
        token, _, owner = str(value).partition("|")
        return token, owner or None

    def claim(self, pid: str, ttl_seconds: Optional[int] = None, owner: Optional[str] = None) -> Optional[str]:
        """Return a secret token if the pid was free, else None"""
        owner = owner or default_owner()
        ttl_seconds = ttl_seconds or self.ttl_seconds
        token = secrets.token_hex(16)
        value = f"{token}|{owner}"

        if not self.redis.set(self._key(pid), value, nx=True, ex=ttl_seconds):
            return None

        owner_key = self._owner_key(owner)
        self.redis.sadd(owner_key, pid)
        self.redis.expire(owner_key, ttl_seconds)

        logger.debug(f"Claimed pid {pid} for {owner}")
        return token

    def release(self, pid: str, token: str) -> bool:
        """Delete the claim only when token matches the holder's token"""
        current = self.redis.get(self._key(pid))
        if current is None:
            return False

        current_token, owner = self._split(current)
        if not hmac.compare_digest(current_token, str(token)):
            return False

        deleted = self.redis.delete(self._key(pid))
        if owner:
            self.redis.srem(self._owner_key(owner), pid)

        return int(deleted) == 1

    def force_release(self, pid: str) -> None:
        current = self.redis.get(self._key(pid))
        if current is None:
            return

        _, owner = self._split(current)
        self.redis.delete(self._key(pid))
        if owner:
            self.redis.srem(self._owner_key(owner), pid)

    def release_all_for_owner(self, owner: str) -> int:
        owner_key = self._owner_key(owner)
        pids = self.redis.smembers(owner_key) or set()

        released = 0
        for pid in pids:
            self.force_release(pid)
            released += 1

        self.redis.delete(owner_key)
        logger.info(f"Released {released} catalog claim(s) held by {owner}")
        return released

    def current_owner(self, pid: str) -> Optional[str]:
        current = self.redis.get(self._key(pid))
        if current is None:
            return None
        return self._split(current)[1]
