# storefront/services/notification/notification_service.py
"""Persisted notifications for staff and customers"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from storefront.models.customer import User
from storefront.models.notification import Notification
from storefront.models.support import SupportConversation, SupportMessage

logger = logging.getLogger(__name__)

ADMIN_CONVERSATION_ALERT = "support.conversation_alert"
CUSTOMER_SUPPORT_REPLY = "support.customer_reply"
ADMIN_ESCALATION_DIGEST = "support.escalation_digest"


class NotificationService:
    """Creates notification records consumed by the admin panel and mobile push"""

    @staticmethod
    def notify_admins(
            db: Session,
            conversation: SupportConversation,
            reason: str,
            recipients: Optional[Iterable[User]] = None,
    ) -> List[Notification]:
        """Alert support-capable staff that a conversation needs attention"""
        if recipients is None:
            recipients = User.support_agents(db).all()

        notifications = []
        for admin in recipients:
            notification = Notification(
                recipient_type="user",
                recipient_id=admin.id,
                kind=ADMIN_CONVERSATION_ALERT,
                title="Support conversation needs attention",
                body=reason,
                data={
                    "conversation_id": conversation.id,
                    "conversation_uuid": conversation.uuid,
                    "customer_id": conversation.customer_id,
                    "status": conversation.status,
                    "reason": reason,
                },
            )
            db.add(notification)
            notifications.append(notification)

        db.commit()

        if notifications:
            logger.info(
                f"Alerted {len(notifications)} staff member(s) about conversation {conversation.id}: {reason}"
            )
        else:
            logger.warning(f"No active support staff to alert for conversation {conversation.id}")

        return notifications

    @staticmethod
    def notify_customer(
            db: Session,
            conversation: SupportConversation,
            message: SupportMessage,
    ) -> Optional[Notification]:
        """Tell the customer that support replied"""
        if message.is_internal_note or not conversation.customer_id:
            return None

        notification = Notification(
            recipient_type="customer",
            recipient_id=conversation.customer_id,
            kind=CUSTOMER_SUPPORT_REPLY,
            title="Support replied",
            body=message.body[:200],
            data={
                "conversation_uuid": conversation.uuid,
                "message_id": message.id,
            },
        )
        db.add(notification)
        db.commit()

        logger.info(f"Notified customer {conversation.customer_id} about reply {message.id}")
        return notification

    @staticmethod
    def notify_escalation_digest(
            db: Session,
            summary: Dict[str, Any],
            recipients: Iterable[User],
    ) -> List[Notification]:
        """Send the SLA digest to each recipient"""
        body = NotificationService.digest_text(summary)
        title = f"Support SLA Digest: {summary.get('overdue_count', 0)} overdue"

        notifications = []
        for admin in recipients:
            notification = Notification(
                recipient_type="user",
                recipient_id=admin.id,
                kind=ADMIN_ESCALATION_DIGEST,
                title=title,
                body=body,
                data={"type": "support_escalation_digest", "summary": summary},
            )
            db.add(notification)
            notifications.append(notification)

        db.commit()
        logger.info(f"Support escalation digest sent to {len(notifications)} user(s)")
        return notifications

    @staticmethod
    def digest_text(summary: Dict[str, Any]) -> str:
        lines = [
            f"Overdue conversations: {summary.get('overdue_count', 0)}",
            f"Unassigned overdue: {summary.get('unassigned_overdue_count', 0)}",
            f"SLA threshold: {summary.get('sla_minutes', 15)} minutes",
        ]
        if summary.get("oldest_conversation_id"):
            lines.append(
                f"Oldest wait: {summary.get('oldest_wait_minutes', 0)} min "
                f"(Conversation #{summary['oldest_conversation_id']})"
            )

        items = summary.get("items") or []
        if items:
            lines.append("Top overdue conversations:")
            lines.extend(
                f"#{item['conversation_id']} | {item['wait_minutes']} min | {item['customer']} | {item['status']}"
                for item in items
            )

        return "\n".join(lines)
