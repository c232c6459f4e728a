"""Support chat background tasks"""
import logging
from typing import Optional

from storefront.config.celery_config import celery_app
from storefront.config.database import SessionLocal
from storefront.config.redis import get_redis
from storefront.services.support.escalation_service import SupportEscalationService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def escalate_pending_support_conversations(
        self,
        sla_minutes: Optional[int] = None,
        repeat_minutes: Optional[int] = None,
        limit: Optional[int] = None,
        force: bool = False,
        dry_run: bool = False,
):
    """Alert staff about conversations waiting on an agent past the SLA"""
    db = SessionLocal()
    try:
        report = SupportEscalationService(get_redis()).escalate_pending(
            db,
            sla_minutes=sla_minutes,
            repeat_minutes=repeat_minutes,
            limit=limit,
            force=force,
            dry_run=dry_run,
        )
        return {
            "status": "disabled" if report.disabled else "success",
            "candidates": report.candidates,
            "escalated": report.escalated,
            "skipped_cooldown": report.skipped_cooldown,
            "notifications_sent": report.notifications_sent,
            "mode": "dry-run" if dry_run else "live",
        }

    except Exception as exc:
        logger.error(f"Support escalation run failed: {exc}", exc_info=True)
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3)
def send_support_escalation_digest(
        self,
        sla_minutes: Optional[int] = None,
        limit: Optional[int] = None,
        force: bool = False,
        dry_run: bool = False,
):
    """Summary of overdue conversations for every support staff member"""
    db = SessionLocal()
    try:
        report = SupportEscalationService(get_redis()).send_digest(
            db, sla_minutes=sla_minutes, limit=limit, force=force, dry_run=dry_run
        )
        if report.disabled:
            status = "disabled"
        elif report.skipped_empty:
            status = "skipped"
        else:
            status = "success"
        return {
            "status": status,
            "overdue_count": report.summary.get("overdue_count", 0),
            "notifications_sent": report.notifications_sent,
            "mode": "dry-run" if dry_run else "live",
        }

    except Exception as exc:
        logger.error(f"Support escalation digest failed: {exc}", exc_info=True)
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

    finally:
        db.close()
