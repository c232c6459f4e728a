"""
Celery worker entry point
Runs support escalation, catalog and cart background jobs
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from storefront.config.celery_config import celery_app
from storefront.config.redis import get_redis
from storefront.services.catalog.claim_service import ProductClaimService, default_owner
from storefront.utils.my_logging import setup_logging

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Handle worker startup"""
    logger.info("🚀 Celery worker ready!")
    logger.info(f"📋 Registered tasks: {[name for name in celery_app.tasks.keys() if name.startswith('storefront.')]}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    """Handle worker shutdown: hand back catalog claims held by this worker"""
    logger.info("🛑 Celery worker shutting down...")
    try:
        released = ProductClaimService(get_redis()).release_all_for_owner(default_owner())
        logger.info(f"Released {released} catalog claim(s) on shutdown")
    except Exception as e:
        logger.error(f"Failed to release catalog claims on shutdown: {e}")


if __name__ == "__main__":
    celery_app.start([
        'worker',
        '--loglevel=info',
        '--concurrency=4',
        '--max-tasks-per-child=1000'
    ])
