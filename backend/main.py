"""
FastAPI Application Entry Point
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.async_database import init_db, close_db
from app.core.cache import init_cache, close_cache
from app.core.sentry import init_sentry
from app.core.exceptions import setup_exception_handlers
from app.api.routers import health, auth, products, logs
from app.middleware.correlation_id import CorrelationIDMiddleware
from app.utils.logger import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(log_level="DEBUG" if settings.DEBUG else None)

    await init_db()
    await init_cache()
    init_sentry()

    logger.info(
        f"{settings.PROJECT_NAME} {settings.VERSION} started",
        extra={
            "timezone": settings.TIMEZONE,
            "sync_max_batch_size": settings.SYNC_MAX_BATCH_SIZE,
            "log_retention_days": settings.LOG_RETENTION_DAYS,
        }
    )

    yield

    await close_db()
    await close_cache()
    logger.info("Application shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# Setup global exception handlers
setup_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID", "Content-Disposition"],
)

# Add correlation ID middleware (for request tracing)
app.add_middleware(CorrelationIDMiddleware)

# Include routers
app.include_router(health.router, prefix=f"{settings.API_PREFIX}/health", tags=["Health"])
app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Authentication"])
app.include_router(products.router, prefix=f"{settings.API_PREFIX}/products", tags=["Products"])
app.include_router(logs.router, prefix=f"{settings.API_PREFIX}/logs", tags=["Logs"])


@app.get("/")
async def root():
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/api/docs",
        "resources": {
            "products": f"{settings.API_PREFIX}/products",
            "sync": f"{settings.API_PREFIX}/products/sync",
            "logs": f"{settings.API_PREFIX}/logs",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
