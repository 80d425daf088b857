"""
Async engine, session factory and the request-scoped session dependency
"""
from sqlalchemy.engine import make_url, URL
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker
)
from sqlalchemy.orm import DeclarativeBase
from typing import AsyncGenerator
import logging
import ssl

from app.core.config import settings

logger = logging.getLogger(__name__)


def get_database_url(raw_url: str) -> URL:
    """
    Parse DATABASE_URL, dropping the libpq `sslmode` option asyncpg rejects
    """
    url = make_url(raw_url)
    if "sslmode" in url.query:
        url = url.difference_update_query(["sslmode"])
    return url


def build_engine_kwargs(raw_url: str) -> dict:
    """
    Engine options for the configured backend

    SQLite (tests, local runs) takes no pool sizing arguments.
    """
    if raw_url.startswith("sqlite"):
        return {"echo": settings.DB_ECHO}

    engine_kwargs = {
        "echo": settings.DB_ECHO,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "connect_args": {"server_settings": {"application_name": settings.PROJECT_NAME}},
    }

    # Managed Postgres with self-signed certificates
    if "sslmode=require" in raw_url or "ssl=" in raw_url:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        engine_kwargs["connect_args"]["ssl"] = ssl_context

    return engine_kwargs


engine = create_async_engine(
    get_database_url(settings.DATABASE_URL),
    **build_engine_kwargs(settings.DATABASE_URL)
)

# Writes are committed explicitly by services; objects stay readable afterwards
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Session per request: committed when the handler returns, rolled back
    when it raises
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Initialize database tables
    """
    # Register models with Base.metadata
    from app.db.models import audit_log, product, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def close_db() -> None:
    """
    Close database connections
    """
    await engine.dispose()
    logger.info("Database connections closed")
