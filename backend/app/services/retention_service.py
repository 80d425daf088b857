"""
Audit log retention
"""
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, ForbiddenError
from app.db.models.enums import LogOperation, EntityType, LogLevel, LogSource
from app.db.schemas.actor import Actor
from app.db.utils.audit_log_crud import audit_log_crud
from app.services.audit_service import audit_service
from app.utils.helpers import utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_RETENTION_DAYS = 30


class RetentionService:
    """Deletes audit log entries past a given age"""

    async def purge_older_than(
        self,
        db: AsyncSession,
        actor: Actor,
        days: int = DEFAULT_RETENTION_DAYS,
        source: LogSource = LogSource.WEB,
        now: Optional[datetime] = None
    ) -> int:
        """
        Delete entries created more than `days` days ago

        The cleanup itself is recorded as a new entry afterwards, so it is
        never a candidate for the purge that created it.

        Args:
            db: Database session
            actor: Acting identity; must be an admin
            days: Age threshold in days
            source: Channel recorded on the cleanup entry
            now: Reference time (defaults to current time)

        Returns:
            Number of deleted entries

        Raises:
            ForbiddenError: If the actor is not an admin
            BadRequestError: If days is not a positive integer
        """
        if actor is None or not actor.is_admin:
            raise ForbiddenError("Admin access required")
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise BadRequestError("days must be a positive integer")

        cutoff = (now or utcnow()) - timedelta(days=days)
        deleted_count = await audit_log_crud.delete_older_than(db, cutoff)
        await db.commit()

        logger.info(
            f"Purged {deleted_count} audit log entries older than {days} days",
            extra={"cutoff": cutoff.isoformat(), "deleted_count": deleted_count}
        )

        await audit_service.log_action(
            db,
            operation=LogOperation.DELETE,
            entity_type=EntityType.SYSTEM,
            message=(
                f"Log cleanup completed: {deleted_count} logs older than "
                f"{days} days were deleted"
            ),
            level=LogLevel.INFO,
            source=source,
            actor=actor,
            details={"deletedCount": deleted_count, "daysToKeep": days}
        )
        await db.commit()

        return deleted_count


# Create singleton instance
retention_service = RetentionService()
