from fastapi import APIRouter
from sqlalchemy import text
import time

from unionsite.core.config import settings
from unionsite.core.database import get_session_local
from unionsite.core.logging_config import logger

router = APIRouter(prefix="/health", tags=["Health Checks"])


@router.get("/ready")
async def readiness():
    """Database reachable"""
    start = time.time()
    try:
        async with get_session_local()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {"status": "unhealthy", "database": str(e)}

    return {
        "status": "healthy",
        "database": "ok",
        "latency_ms": round((time.time() - start) * 1000, 2),
        "environment": settings.ENVIRONMENT,
    }
