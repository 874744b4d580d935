"""Health checks and monitoring endpoints"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from booking_api.config.database import get_db
from booking_api.config.settings import get_settings

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "booking-api"}


@health_router.get("/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "not_configured",
        "overall": "unknown"
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {str(e)}"

    # Redis only matters when it backs the booking locks
    if get_settings().BOOKING_LOCK_BACKEND.lower() == "redis":
        from booking_api.config.redis import get_redis

        try:
            get_redis().ping()
            checks["redis"] = "healthy"
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            checks["redis"] = f"unhealthy: {str(e)}"

    relevant = [v for k, v in checks.items() if k != "overall" and v not in ("unknown", "not_configured")]
    checks["overall"] = "healthy" if all(v == "healthy" for v in relevant) else "degraded"

    return checks
