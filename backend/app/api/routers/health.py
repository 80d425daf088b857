"""
Health check endpoints
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.async_database import get_db
from app.core.cache import get_redis
from app.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION
    }


@router.get("/health/db")
async def database_health(db: AsyncSession = Depends(get_db)):
    """
    Check database connectivity
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": "disconnected", "error": str(e)}
    return {"status": "healthy", "database": "connected"}


@router.get("/health/cache")
async def cache_health():
    """
    Check Redis cache connectivity
    """
    try:
        redis = await get_redis()
        await redis.ping()
    except Exception as e:
        logger.warning(f"Cache health check failed: {e}")
        return {"status": "unhealthy", "cache": "disconnected", "error": str(e)}
    return {"status": "healthy", "cache": "connected"}
