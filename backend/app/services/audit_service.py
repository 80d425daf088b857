"""
Audit logging service
"""
import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.audit_log import AuditLog
from app.db.models.enums import LogOperation, EntityType, LogLevel, LogSource, LogStatus
from app.db.schemas.actor import Actor
from app.core.config import settings
from app.utils.helpers import json_safe
from app.utils.logger import get_logger

logger = get_logger(__name__)

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class AuditService:
    """Append-only writer for audit log entries"""

    async def log_action(
        self,
        db: AsyncSession,
        operation: LogOperation,
        entity_type: EntityType,
        message: str,
        level: LogLevel = LogLevel.INFO,
        source: LogSource = LogSource.WEB,
        actor: Optional[Actor] = None,
        entity_id: Optional[int] = None,
        details: Optional[Any] = None,
        duration: Optional[int] = None,
        status: LogStatus = LogStatus.SUCCESS,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[AuditLog]:
        """
        Record one event in the audit log

        Args:
            db: Database session
            operation: Kind of event (create, update, delete, sync, ...)
            entity_type: Type of entity affected
            message: Human-readable description
            level: Severity shown in the log viewer
            source: Channel the event came through
            actor: Acting user and request provenance
            entity_id: ID of affected entity
            details: Free-form structured payload
            duration: Elapsed time in milliseconds
            status: Outcome of the operation
            metadata: Free-form structured payload

        Returns:
            The new entry, or None when audit logging is disabled
        """
        level = LogLevel(level)
        logger.log(
            _PYTHON_LEVELS[level],
            f"[audit] {operation}/{entity_type}: {message}",
            extra={
                "audit_operation": str(operation),
                "audit_entity_type": str(entity_type),
                "audit_entity_id": entity_id,
                "user_id": actor.user_id if actor else None,
            }
        )

        if not settings.AUDIT_LOG_ENABLED:
            return None

        actor = actor or Actor()
        audit_log = AuditLog(
            operation=operation,
            entity_type=entity_type,
            entity_id=entity_id,
            message=message,
            details=json_safe(details),
            user_id=actor.user_id,
            username=actor.username,
            level=level,
            source=source,
            status=status,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            correlation_id=actor.correlation_id,
            duration=duration,
            meta=json_safe(metadata),
        )

        db.add(audit_log)
        await db.flush()
        return audit_log


# Create singleton instance
audit_service = AuditService()
