"""
Scheduled audit log retention
"""
import asyncio
import logging
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.async_database import build_engine_kwargs, get_database_url
from app.core.celery_app import celery_app
from app.core.config import settings
from app.db.models.enums import LogSource
from app.db.schemas.actor import Actor
from app.services.retention_service import retention_service

logger = logging.getLogger(__name__)


async def run_retention(session_factory: async_sessionmaker, days: int) -> int:
    """
    Purge expired entries as the system actor

    Args:
        session_factory: Factory producing database sessions
        days: Number of days of entries to keep

    Returns:
        Number of deleted entries
    """
    async with session_factory() as db:
        return await retention_service.purge_older_than(
            db,
            Actor.system(),
            days=days,
            source=LogSource.SYSTEM
        )


async def _purge(days: int) -> int:
    # Each run gets its own engine: asyncio.run() starts a fresh event loop
    engine = create_async_engine(
        get_database_url(settings.DATABASE_URL),
        **build_engine_kwargs(settings.DATABASE_URL)
    )
    try:
        return await run_retention(
            async_sessionmaker(engine, expire_on_commit=False, autoflush=False),
            days
        )
    finally:
        await engine.dispose()


@celery_app.task(name="purge_expired_audit_logs")
def purge_expired_audit_logs(days: int = settings.LOG_RETENTION_DAYS):
    """
    Delete audit log entries older than the retention window

    Args:
        days: Number of days of entries to keep
    """
    deleted_count = asyncio.run(_purge(days))
    logger.info(f"Scheduled retention removed {deleted_count} audit log entries")
    return {"deleted_count": deleted_count, "days": days}
