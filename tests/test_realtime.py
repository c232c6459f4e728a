"""Tests for realtime fan-out and conversation locks"""
import json
import threading
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from storefront.services.notification.realtime import NullBroadcaster, RealtimeBroadcaster
from storefront.services.support.locks import (
    ConversationLockRegistry,
    RedisConversationLockRegistry,
    conversation_scope,
    customer_scope,
)
from tests.doubles import FakeRedis


def _conversation():
    return SimpleNamespace(id=7, uuid="3f1c2a9e-0000-4000-8000-000000000001")


def _message(is_internal_note=False):
    return SimpleNamespace(
        id=42,
        sender_type="agent",
        body="Your parcel left the warehouse.",
        message_type="text",
        message_metadata={"type": "agent_reply"},
        is_internal_note=is_internal_note,
        read_at=None,
        created_at=datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc),
    )


class TestRealtimeBroadcaster:

    def test_publishes_on_conversation_channel(self):
        redis = FakeRedis()

        assert RealtimeBroadcaster(redis).broadcast_message(_conversation(), _message()) is True

        channel, raw = redis.published[0]
        assert channel == "support.conversation.3f1c2a9e-0000-4000-8000-000000000001"
        envelope = json.loads(raw)
        assert envelope["event"] == "support.message.created"
        assert envelope["data"]["id"] == 42
        assert envelope["data"]["conversation_id"] == "3f1c2a9e-0000-4000-8000-000000000001"
        assert envelope["data"]["created_at"] == "2026-03-01T12:30:00+00:00"
        assert envelope["data"]["is_internal_note"] is False

    def test_internal_notes_are_never_published(self):
        redis = FakeRedis()

        assert RealtimeBroadcaster(redis).broadcast_message(_conversation(), _message(True)) is False
        assert redis.published == []

    def test_redis_failure_is_reported_not_raised(self):
        redis = MagicMock()
        redis.publish.side_effect = RedisConnectionError("gone")

        assert RealtimeBroadcaster(redis).broadcast_message(_conversation(), _message()) is False

    def test_null_broadcaster(self):
        assert NullBroadcaster().broadcast_message(_conversation(), _message()) is False


class TestConversationLocks:

    def test_scopes(self):
        assert conversation_scope(5) == "conversation:5"
        assert customer_scope(5) == "customer:5"

    def test_same_scope_is_mutually_exclusive(self):
        registry = ConversationLockRegistry()
        entered = threading.Event()
        order = []

        def contender():
            entered.set()
            with registry.hold("conversation:1"):
                order.append("second")

        with registry.hold("conversation:1"):
            worker = threading.Thread(target=contender)
            worker.start()
            entered.wait(1)
            order.append("first")
        worker.join(1)

        assert order == ["first", "second"]

    def test_different_scopes_do_not_block(self):
        registry = ConversationLockRegistry()

        with registry.hold("conversation:1"):
            with registry.hold("conversation:2"):
                pass

    def test_released_scopes_are_forgotten(self):
        registry = ConversationLockRegistry()

        for conversation_id in range(50):
            with registry.hold(conversation_scope(conversation_id)):
                assert len(registry) == 1

        assert len(registry) == 0

    def test_scope_is_released_when_the_body_raises(self):
        registry = ConversationLockRegistry()

        with pytest.raises(ValueError):
            with registry.hold("customer:1"):
                raise ValueError("boom")

        assert len(registry) == 0
        with registry.hold("customer:1"):
            pass

    def test_waiting_thread_keeps_the_entry(self):
        registry = ConversationLockRegistry()
        done = threading.Event()

        def contender():
            with registry.hold("conversation:1"):
                done.set()

        with registry.hold("conversation:1"):
            worker = threading.Thread(target=contender)
            worker.start()
            # let the worker start waiting on the same entry
            worker.join(0.1)
            assert len(registry) == 1
        worker.join(1)

        assert done.is_set()
        assert len(registry) == 0

    def test_redis_registry_uses_namespaced_lock(self):
        redis = MagicMock()

        with RedisConversationLockRegistry(redis, timeout=5, blocking_timeout=2).hold("customer:9"):
            pass

        redis.lock.assert_called_once_with("support:lock:customer:9", timeout=5, blocking_timeout=2)
        redis.lock.return_value.__enter__.assert_called_once()
        redis.lock.return_value.__exit__.assert_called_once()
