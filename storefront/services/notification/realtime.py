# storefront/services/notification/realtime.py
"""Realtime fan-out of support messages over Redis pub/sub"""
import json
import logging
from typing import Any, Dict

from redis.exceptions import RedisError

from storefront.config.redis import RedisKeys
from storefront.models.support import SupportConversation, SupportMessage

logger = logging.getLogger(__name__)

MESSAGE_CREATED_EVENT = "support.message.created"


def message_payload(conversation: SupportConversation, message: SupportMessage) -> Dict[str, Any]:
    return {
        "id": message.id,
        "conversation_id": conversation.uuid,
        "sender_type": message.sender_type,
        "body": message.body,
        "message_type": message.message_type,
        "metadata": message.message_metadata,
        "is_internal_note": bool(message.is_internal_note),
        "read_at": message.read_at.isoformat() if message.read_at else None,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


class RealtimeBroadcaster:
    """Publishes message events on a per-conversation channel"""

    def __init__(self, redis_client):
        self.redis = redis_client

    def broadcast_message(self, conversation: SupportConversation, message: SupportMessage) -> bool:
        if message.is_internal_note:
            return False

        channel = RedisKeys.SUPPORT_CONVERSATION_CHANNEL.format(conversation_uuid=conversation.uuid)
        envelope = {
            "event": MESSAGE_CREATED_EVENT,
            "data": message_payload(conversation, message),
        }

        try:
            self.redis.publish(channel, json.dumps(envelope, default=str))
        except RedisError as e:
            # Realtime delivery is best effort; clients re-sync through get_messages
            logger.warning(f"Realtime broadcast failed for conversation {conversation.id}: {e}")
            return False

        return True


class NullBroadcaster:
    """Used when realtime delivery is disabled"""

    def broadcast_message(self, conversation: SupportConversation, message: SupportMessage) -> bool:
        return False
