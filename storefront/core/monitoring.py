"""Health checks and monitoring endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from storefront.config.database import get_db
from storefront.config.redis import get_redis
from storefront.config.settings import Settings, get_settings

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "storefront-support"}


def integration_state(settings: Settings) -> dict:
    """Configuration of the outside services the support and cart flows lean on.

    Informational only: chat falls back to canned replies without DeepSeek and
    shipping quotes fail soft without CJ, so neither affects the overall status.
    """
    return {
        "deepseek": "configured" if settings.DEEPSEEK_API_KEY else "not_configured",
        "deepseek_model": settings.DEEPSEEK_MODEL,
        "cj": "configured" if settings.CJ_ACCESS_TOKEN else "not_configured",
        "support_mode": "ai_only" if settings.SUPPORT_AI_ONLY_MODE else "standard",
        "escalation_digest": "enabled" if settings.SUPPORT_DIGEST_ENABLED else "disabled",
    }


@health_router.get("/detailed")
def detailed_health_check(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Database and Redis reachability plus integration configuration"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    try:
        get_redis().ping()
        checks["redis"] = "healthy"
    except Exception as e:
        checks["redis"] = f"unhealthy: {str(e)}"

    if all(status == "healthy" for status in checks.values()):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    checks["integrations"] = integration_state(settings)
    return checks
