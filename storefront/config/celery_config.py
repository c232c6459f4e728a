# storefront/config/celery_config.py
"""Celery configuration, task routing and periodic schedule"""
from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from storefront.config.settings import get_settings

settings = get_settings()

TASK_MODULES = [
    "storefront.tasks.support_tasks",
    "storefront.tasks.catalog_tasks",
    "storefront.tasks.cart_tasks",
]


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "storefront",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=TASK_MODULES,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task routing
        task_routes={
            "storefront.tasks.support_tasks.*": {"queue": "support"},
            "storefront.tasks.catalog_tasks.*": {"queue": "catalog"},
            "storefront.tasks.cart_tasks.*": {"queue": "cart"},
        },

        # Queue definitions
        task_queues=(
            Queue("support", routing_key="support"),
            Queue("catalog", routing_key="catalog"),
            Queue("cart", routing_key="cart"),
        ),

        # Periodic jobs
        beat_schedule={
            "escalate-pending-support-conversations": {
                "task": "storefront.tasks.support_tasks.escalate_pending_support_conversations",
                "schedule": crontab(minute="*/5"),
            },
            "send-support-escalation-digest": {
                "task": "storefront.tasks.support_tasks.send_support_escalation_digest",
                "schedule": crontab(minute=0),
            },
        },

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Retry settings
        task_retry_max_retries=3,
        task_retry_delay=60,

        broker_connection_retry_on_startup=True,
    )

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
