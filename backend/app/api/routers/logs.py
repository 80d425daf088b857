"""
Audit log endpoints: browsing, statistics, export and retention
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.async_database import get_db
from app.core.config import settings
from app.api.dependencies.auth import get_actor, get_current_admin_user
from app.api.dependencies.pagination import pagination_dependency
from app.db.models.enums import LogOperation, EntityType, LogLevel, LogSource
from app.db.models.user import User
from app.db.schemas.actor import Actor
from app.db.schemas.audit_log import (
    AuditLogResponse,
    CleanupResponse,
    LogFilter,
    OverviewStats,
    TimelineResponse,
)
from app.db.schemas.pagination import PaginatedResponse, PaginationParams
from app.services.log_query_service import log_query_service
from app.services.retention_service import retention_service
from app.utils.helpers import utcnow

router = APIRouter(dependencies=[Depends(get_actor)])


async def get_log_filter(
    operation: Optional[LogOperation] = Query(None),
    entity_type: Optional[EntityType] = Query(None),
    level: Optional[LogLevel] = Query(None),
    source: Optional[LogSource] = Query(None),
    user_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    start_date: Optional[datetime] = Query(None, description="Inclusive lower bound"),
    end_date: Optional[datetime] = Query(None, description="Inclusive upper bound")
) -> LogFilter:
    return LogFilter(
        operation=operation,
        entity_type=entity_type,
        level=level,
        source=source,
        user_id=user_id,
        search=search,
        start_date=start_date,
        end_date=end_date
    )


@router.get("/", response_model=PaginatedResponse[AuditLogResponse])
async def list_logs(
    log_filter: LogFilter = Depends(get_log_filter),
    pagination: PaginationParams = Depends(pagination_dependency(50, max_page_size=200)),
    db: AsyncSession = Depends(get_db)
):
    """
    List audit log entries, newest first
    """
    return await log_query_service.list_logs(
        db,
        log_filter,
        page=pagination.page,
        page_size=pagination.page_size
    )


@router.get("/stats/overview", response_model=OverviewStats)
async def overview_stats(db: AsyncSession = Depends(get_db)):
    return await log_query_service.get_overview_stats(db)


@router.get("/stats/timeline", response_model=TimelineResponse)
async def timeline_stats(
    days: int = Query(settings.LOG_TIMELINE_DEFAULT_DAYS, ge=1, le=365),
    db: AsyncSession = Depends(get_db)
):
    """
    Per-day counts by level over the last `days` days
    """
    timeline = await log_query_service.get_timeline(db, days=days)
    return TimelineResponse(timeline=timeline)


@router.get("/user/{user_id}", response_model=PaginatedResponse[AuditLogResponse])
async def list_user_logs(
    user_id: int,
    pagination: PaginationParams = Depends(pagination_dependency(20)),
    db: AsyncSession = Depends(get_db)
):
    return await log_query_service.list_user_logs(
        db,
        user_id,
        page=pagination.page,
        page_size=pagination.page_size
    )


@router.get("/export/csv")
async def export_logs_csv(
    log_filter: LogFilter = Depends(get_log_filter),
    db: AsyncSession = Depends(get_db)
):
    """
    Download matching entries as CSV (newest first, capped at LOG_EXPORT_LIMIT rows)
    """
    content = await log_query_service.export_csv(db, log_filter)
    filename = f"sync-logs-{utcnow().strftime('%Y-%m-%d')}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.delete("/cleanup", response_model=CleanupResponse)
async def cleanup_logs(
    days: int = Query(settings.LOG_RETENTION_DAYS, ge=1),
    _: User = Depends(get_current_admin_user),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete entries older than `days` days (admin only)
    """
    deleted_count = await retention_service.purge_older_than(db, actor, days=days)
    return CleanupResponse(
        message=f"Deleted {deleted_count} logs older than {days} days",
        deleted_count=deleted_count
    )


@router.get("/{log_id}", response_model=AuditLogResponse)
async def get_log(
    log_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await log_query_service.get_log(db, log_id)
