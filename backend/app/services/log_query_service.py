"""
Audit log queries: listings, statistics, timelines and CSV export
"""
from datetime import date, datetime
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BadRequestError, NotFoundError
from app.db.models.audit_log import AuditLog
from app.db.schemas.audit_log import (
    AuditLogResponse,
    LevelCount,
    LogFilter,
    OperationCount,
    OverviewCounts,
    OverviewStats,
    RecentActivity,
    TimelineBucket,
)
from app.db.schemas.pagination import PaginatedResponse
from app.db.utils.audit_log_crud import audit_log_crud
from app.utils.helpers import ensure_utc, local_midnight

CSV_HEADER = "Date,Time,Level,Operation,Entity Type,Message,User,Source,IP Address"


def csv_quote(value: str) -> str:
    """
    Wrap a field in double quotes, doubling any quotes inside it
    """
    return '"' + value.replace('"', '""') + '"'


def csv_row(entry: AuditLog) -> str:
    """
    Render one entry as an export row
    """
    timestamp = ensure_utc(entry.created_at).isoformat()
    day, _, clock = timestamp.partition("T")
    clock = clock[:8]

    return ",".join([
        day,
        clock,
        str(entry.level or ""),
        str(entry.operation or ""),
        str(entry.entity_type or ""),
        csv_quote(entry.message or ""),
        entry.username or "System",
        str(entry.source or ""),
        entry.ip_address or "",
    ])


def _day_key(value) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)


class LogQueryService:
    """
    Read-side operations over the audit log
    """

    async def list_logs(
        self,
        db: AsyncSession,
        log_filter: Optional[LogFilter],
        page: int = 1,
        page_size: int = 50
    ) -> PaginatedResponse[AuditLogResponse]:
        """
        One page of matching entries, newest first

        Args:
            db: Database session
            log_filter: Filter criteria (all optional)
            page: Page number (1-indexed)
            page_size: Entries per page

        Returns:
            Entries plus pagination metadata
        """
        entries, total = await audit_log_crud.search(
            db,
            log_filter,
            skip=(page - 1) * page_size,
            limit=page_size
        )
        return PaginatedResponse[AuditLogResponse].create(
            items=[AuditLogResponse.model_validate(entry) for entry in entries],
            total=total,
            page=page,
            page_size=page_size
        )

    async def get_log(
        self,
        db: AsyncSession,
        log_id: int
    ) -> AuditLog:
        entry = await audit_log_crud.get(db, log_id)
        if entry is None:
            raise NotFoundError("Log")
        return entry

    async def list_user_logs(
        self,
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        page_size: int = 20
    ) -> PaginatedResponse[AuditLogResponse]:
        """
        Activity of a single user, newest first
        """
        return await self.list_logs(db, LogFilter(user_id=user_id), page, page_size)

    async def get_overview_stats(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None
    ) -> OverviewStats:
        """
        Totals, today-vs-yesterday counts, groupings and latest activity

        "Today" starts at midnight in the configured timezone.
        """
        today = local_midnight(0, now)
        yesterday = local_midnight(1, now)

        total = await audit_log_crud.count(db)
        today_count = await audit_log_crud.count_between(db, start=today)
        yesterday_count = await audit_log_crud.count_between(db, start=yesterday, end=today)
        operations = await audit_log_crud.group_counts(db, AuditLog.operation)
        levels = await audit_log_crud.group_counts(db, AuditLog.level)
        recent = await audit_log_crud.newest(db, [], limit=settings.LOG_RECENT_ACTIVITY_LIMIT)

        return OverviewStats(
            overview=OverviewCounts(
                total=total,
                today=today_count,
                yesterday=yesterday_count,
                change=today_count - yesterday_count
            ),
            operations=[OperationCount(operation=value, count=count) for value, count in operations],
            levels=[LevelCount(level=value, count=count) for value, count in levels],
            recent_activity=[RecentActivity.model_validate(entry) for entry in recent]
        )

    async def get_timeline(
        self,
        db: AsyncSession,
        days: int = 7,
        now: Optional[datetime] = None
    ) -> List[TimelineBucket]:
        """
        Per-day, per-level counts from midnight `days` days ago until now

        Days without any entry are omitted rather than zero-filled.
        """
        if days < 1:
            raise BadRequestError("days must be a positive integer")

        since = local_midnight(days, now)
        rows = await audit_log_crud.daily_level_counts(db, since)

        buckets: Dict[str, TimelineBucket] = {}
        for day, level, count in rows:
            key = _day_key(day)
            bucket = buckets.setdefault(key, TimelineBucket(date=key, levels={}, total=0))
            bucket.levels[str(level)] = bucket.levels.get(str(level), 0) + count
            bucket.total += count

        return [buckets[key] for key in sorted(buckets)]

    async def export_csv(
        self,
        db: AsyncSession,
        log_filter: Optional[LogFilter]
    ) -> str:
        """
        Matching entries as CSV, newest first, capped at LOG_EXPORT_LIMIT rows
        """
        entries = await audit_log_crud.newest(
            db,
            audit_log_crud.build_filters(log_filter),
            limit=settings.LOG_EXPORT_LIMIT
        )
        rows = [csv_row(entry) for entry in entries]
        return CSV_HEADER + "\n" + "\n".join(rows)


# Create singleton instance
log_query_service = LogQueryService()
