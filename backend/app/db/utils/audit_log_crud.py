"""
Audit log queries: filtering, aggregation and age-based deletion
"""
from datetime import datetime
from typing import Any, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, desc, asc

from app.db.models.audit_log import AuditLog
from app.db.schemas.audit_log import LogFilter
from app.db.utils.crud import CRUDBase, apply_filters
from app.db.utils.filters import contains_ci


class CRUDAuditLog(CRUDBase[AuditLog, Any, Any]):
    """
    Read and purge operations for the append-only audit log
    """

    def build_filters(self, log_filter: Optional[LogFilter]) -> list:
        """
        Translate filter criteria into SQL predicates

        Exact matches on operation, entity type, level, source and user;
        inclusive created_at bounds; case-insensitive substring on message.
        """
        if log_filter is None:
            return []

        filters = []

        if log_filter.operation is not None:
            filters.append(AuditLog.operation == log_filter.operation)

        if log_filter.entity_type is not None:
            filters.append(AuditLog.entity_type == log_filter.entity_type)

        if log_filter.level is not None:
            filters.append(AuditLog.level == log_filter.level)

        if log_filter.source is not None:
            filters.append(AuditLog.source == log_filter.source)

        if log_filter.user_id is not None:
            filters.append(AuditLog.user_id == log_filter.user_id)

        if log_filter.start_date is not None:
            filters.append(AuditLog.created_at >= log_filter.start_date)

        if log_filter.end_date is not None:
            filters.append(AuditLog.created_at <= log_filter.end_date)

        if log_filter.search:
            filters.append(contains_ci(AuditLog.message, log_filter.search))

        return filters

    async def search(
        self,
        db: AsyncSession,
        log_filter: Optional[LogFilter] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[AuditLog], int]:
        """
        Page of matching entries, newest first, with the total match count
        """
        return await self.get_page(db, self.build_filters(log_filter), skip=skip, limit=limit)

    async def newest(
        self,
        db: AsyncSession,
        filters: list,
        limit: int
    ) -> List[AuditLog]:
        stmt = apply_filters(select(AuditLog), filters)
        stmt = stmt.order_by(desc(AuditLog.created_at), desc(AuditLog.id)).limit(limit)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_between(
        self,
        db: AsyncSession,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> int:
        """
        Count entries with start <= created_at < end
        """
        filters = []
        if start is not None:
            filters.append(AuditLog.created_at >= start)
        if end is not None:
            filters.append(AuditLog.created_at < end)
        return await self.count(db, filters)

    async def group_counts(
        self,
        db: AsyncSession,
        column
    ) -> List[Tuple[Any, int]]:
        """
        (value, count) pairs for a column, most frequent first
        """
        count = func.count(AuditLog.id).label("count")
        result = await db.execute(
            select(column, count)
            .group_by(column)
            .order_by(desc(count), asc(column))
        )
        return [(row[0], row[1]) for row in result.all()]

    async def daily_level_counts(
        self,
        db: AsyncSession,
        since: datetime
    ) -> List[Tuple[Any, Any, int]]:
        """
        (day, level, count) rows for entries created since a point in time,
        ordered by day
        """
        day = func.date(AuditLog.created_at)
        count = func.count(AuditLog.id)
        result = await db.execute(
            select(day, AuditLog.level, count)
            .where(AuditLog.created_at >= since)
            .group_by(day, AuditLog.level)
            .order_by(asc(day))
        )
        return [(row[0], row[1], row[2]) for row in result.all()]

    async def delete_older_than(
        self,
        db: AsyncSession,
        cutoff: datetime
    ) -> int:
        """
        Delete entries created strictly before cutoff

        Returns:
            Number of deleted entries
        """
        result = await db.execute(
            delete(AuditLog)
            .where(AuditLog.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


# Create a singleton instance
audit_log_crud = CRUDAuditLog(AuditLog)
