# storefront/utils/my_logging.py
"""Logging configuration for the API process and the Celery worker"""
import logging
import sys
from storefront.config.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# DeepSeek and CJ clients; at DEBUG they log request bodies with customer text
CLIENT_LOGGERS = ["openai", "httpx", "httpcore"]

NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "celery",
    "celery.beat",
    "kombu",
    "redis",
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
]


def setup_logging(verbose=True):
    """Configure application logging.

    ``verbose=False`` keeps warnings from storefront code and errors from
    libraries only.
    """
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if not settings.DEBUG:
        for name in CLIENT_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    if not verbose:
        for name in NOISY_LOGGERS + CLIENT_LOGGERS:
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False
