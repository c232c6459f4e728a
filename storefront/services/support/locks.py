# storefront/services/support/locks.py
"""Single-writer locks for support conversations"""
import threading
from contextlib import contextmanager
from typing import Dict, List

from storefront.config.redis import RedisKeys


class ConversationLockRegistry:
    """
    In-process lock per scope key (conversation or customer).

    Entries are reference counted and dropped once no thread holds or waits
    on them, so the registry holds only the scopes currently in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}  # scope -> [lock, users]

    def _acquire_entry(self, scope: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(scope)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[scope] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, scope: str) -> None:
        with self._guard:
            entry = self._locks[scope]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[scope]

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, scope: str):
        lock = self._acquire_entry(scope)
        try:
            with lock:
                yield
        finally:
            self._release_entry(scope)


class RedisConversationLockRegistry:
    """Distributed lock per scope key, for multi-process deployments"""

    def __init__(self, redis_client, timeout: float = 30.0, blocking_timeout: float = 10.0):
        self.redis = redis_client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    @contextmanager
    def hold(self, scope: str):
        lock = self.redis.lock(
            RedisKeys.SUPPORT_CONVERSATION_LOCK.format(scope=scope),
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        with lock:
            yield


def conversation_scope(conversation_id) -> str:
    return f"conversation:{conversation_id}"


def customer_scope(customer_id) -> str:
    return f"customer:{customer_id}"
