# storefront/services/support/escalation_service.py
"""SLA escalation of conversations still waiting for a human agent"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.config.redis import RedisKeys
from storefront.config.settings import Settings, get_settings
from storefront.models.customer import User
from storefront.models.support import ConversationStatus, SupportConversation
from storefront.services.notification.notification_service import NotificationService

logger = logging.getLogger(__name__)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


_LAST_TOUCH = func.coalesce(
    SupportConversation.last_customer_message_at,
    SupportConversation.last_message_at,
    SupportConversation.created_at,
)


@dataclass
class EscalationReport:
    sla_minutes: int
    repeat_minutes: int
    candidates: int = 0
    escalated: int = 0
    skipped_cooldown: int = 0
    notifications_sent: int = 0
    dry_run: bool = False
    force: bool = False
    disabled: bool = False


@dataclass
class DigestReport:
    summary: Dict[str, Any] = field(default_factory=dict)
    recipients: int = 0
    notifications_sent: int = 0
    skipped_empty: bool = False
    dry_run: bool = False
    force: bool = False
    disabled: bool = False


class SupportEscalationService:
    """Alerts staff about pending_agent conversations that exceeded the SLA"""

    def __init__(self, redis_client, settings: Optional[Settings] = None, notifications=NotificationService):
        self.redis = redis_client
        self.settings = settings or get_settings()
        self.notifications = notifications

    @staticmethod
    def last_touch(conversation: SupportConversation) -> Optional[datetime]:
        return _as_aware(
            conversation.last_customer_message_at
            or conversation.last_message_at
            or conversation.created_at
        )

    @staticmethod
    def wait_minutes(conversation: SupportConversation, now: datetime) -> int:
        touched = SupportEscalationService.last_touch(conversation)
        if touched is None:
            return 0
        return max(0, int((now - touched).total_seconds() // 60))

    @staticmethod
    def _overdue_query(db: Session, threshold: datetime):
        return db.query(SupportConversation).filter(
            SupportConversation.status == ConversationStatus.PENDING_AGENT.value,
            _LAST_TOUCH < threshold,
        )

    def overdue_conversations(self, db: Session, threshold: datetime, limit: int) -> List[SupportConversation]:
        return self._overdue_query(db, threshold).order_by(
            _LAST_TOUCH.asc(), SupportConversation.id.asc()
        ).limit(limit).all()

    def escalate_pending(
            self,
            db: Session,
            sla_minutes: Optional[int] = None,
            repeat_minutes: Optional[int] = None,
            limit: Optional[int] = None,
            force: bool = False,
            dry_run: bool = False,
    ) -> EscalationReport:
        sla_minutes = max(1, int(sla_minutes or self.settings.SUPPORT_ESCALATION_SLA_MINUTES))
        repeat_minutes = max(1, int(repeat_minutes or self.settings.SUPPORT_ESCALATION_REPEAT_MINUTES))
        limit = max(1, int(limit or self.settings.SUPPORT_ESCALATION_MAX_PER_RUN))

        report = EscalationReport(
            sla_minutes=sla_minutes,
            repeat_minutes=repeat_minutes,
            dry_run=dry_run,
            force=force,
        )

        if not self.settings.SUPPORT_ESCALATION_ENABLED and not dry_run:
            logger.warning("Support escalation is disabled (SUPPORT_ESCALATION_ENABLED=false)")
            report.disabled = True
            return report

        now = datetime.now(timezone.utc)
        conversations = self.overdue_conversations(db, now - timedelta(minutes=sla_minutes), limit)
        report.candidates = len(conversations)
        if not conversations:
            logger.info("No pending support conversations exceeded SLA")
            return report

        admins = {admin.id: admin for admin in User.support_agents(db).all()}
        if not admins:
            logger.warning("No active admin/staff users found for escalation notifications")
            return report

        for conversation in conversations:
            cooldown_key = RedisKeys.SUPPORT_SLA_ALERT.format(conversation_id=conversation.id)
            if not dry_run and not force and self.redis.exists(cooldown_key):
                report.skipped_cooldown += 1
                continue

            reason = (
                f"SLA breach: customer has waited {self.wait_minutes(conversation, now)} minutes "
                f"without agent reply (threshold {sla_minutes} minutes)."
            )

            if not dry_run:
                recipients = self.resolve_recipients(admins, conversation.assigned_user_id)
                sent = self.notifications.notify_admins(db, conversation, reason, recipients=recipients)
                report.notifications_sent += len(sent)

                if not force:
                    self.redis.set(cooldown_key, now.isoformat(), ex=repeat_minutes * 60)

            report.escalated += 1

        logger.info(
            f"Support escalation {'dry run' if dry_run else 'run'} completed: "
            f"{report.escalated}/{report.candidates} escalated, "
            f"{report.skipped_cooldown} on cooldown, {report.notifications_sent} notification(s)"
        )
        return report

    @staticmethod
    def resolve_recipients(admins_by_id: dict, assigned_user_id: Optional[int]) -> List[User]:
        if assigned_user_id and assigned_user_id in admins_by_id:
            return [admins_by_id[assigned_user_id]]
        return list(admins_by_id.values())

    # ------------------------------------------------------------------ #
    # Digest
    # ------------------------------------------------------------------ #
    def build_digest(self, db: Session, sla_minutes: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        """Counts of overdue conversations plus the longest-waiting rows"""
        sla_minutes = max(1, int(sla_minutes or self.settings.SUPPORT_ESCALATION_SLA_MINUTES))
        limit = max(1, int(limit or self.settings.SUPPORT_DIGEST_MAX_ROWS))
        now = datetime.now(timezone.utc)
        threshold = now - timedelta(minutes=sla_minutes)

        overdue_count = self._overdue_query(db, threshold).count()
        unassigned_count = self._overdue_query(db, threshold).filter(
            SupportConversation.assigned_user_id.is_(None)
        ).count()

        items = [
            {
                "conversation_id": conversation.id,
                "wait_minutes": self.wait_minutes(conversation, now),
                "status": conversation.status,
                "assigned_user_id": conversation.assigned_user_id,
                "customer": self._customer_label(conversation),
            }
            for conversation in self.overdue_conversations(db, threshold, limit)
        ]
        oldest = items[0] if items else {}

        return {
            "sla_minutes": sla_minutes,
            "generated_at": now.isoformat(),
            "overdue_count": overdue_count,
            "unassigned_overdue_count": unassigned_count,
            "assigned_overdue_count": max(0, overdue_count - unassigned_count),
            "oldest_wait_minutes": oldest.get("wait_minutes", 0),
            "oldest_conversation_id": oldest.get("conversation_id", 0),
            "items": items,
        }

    def send_digest(
            self,
            db: Session,
            sla_minutes: Optional[int] = None,
            limit: Optional[int] = None,
            force: bool = False,
            dry_run: bool = False,
    ) -> DigestReport:
        report = DigestReport(dry_run=dry_run, force=force)

        if not self.settings.SUPPORT_DIGEST_ENABLED and not dry_run:
            logger.warning("Support escalation digest is disabled (SUPPORT_DIGEST_ENABLED=false)")
            report.disabled = True
            return report

        report.summary = self.build_digest(db, sla_minutes, limit)
        logger.info(
            f"Support digest: {report.summary['overdue_count']} overdue "
            f"({report.summary['unassigned_overdue_count']} unassigned), "
            f"{len(report.summary['items'])} row(s), mode {'dry-run' if dry_run else 'live'}"
        )
        if dry_run:
            return report

        if report.summary["overdue_count"] == 0 and not self.settings.SUPPORT_DIGEST_SEND_EMPTY and not force:
            logger.info("No overdue conversations. Digest skipped.")
            report.skipped_empty = True
            return report

        recipients = User.support_agents(db).all()
        if not recipients:
            logger.warning("No active admin/staff users found for support escalation digest")
            return report

        sent = self.notifications.notify_escalation_digest(db, report.summary, recipients)
        report.recipients = len(recipients)
        report.notifications_sent = len(sent)
        return report

    @staticmethod
    def _customer_label(conversation: SupportConversation) -> str:
        customer = conversation.customer
        if customer is None:
            return "Guest"
        name = (customer.name or "").strip()
        return f"{name} <{customer.email}>" if name else str(customer.email or "Guest")
