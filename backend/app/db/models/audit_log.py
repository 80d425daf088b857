"""
Audit log model for tracking changes
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index

from app.core.async_database import Base
from app.db.models.enums import (
    LogOperation,
    EntityType,
    LogLevel,
    LogSource,
    LogStatus,
    enum_column,
)
from app.utils.helpers import utcnow


class AuditLog(Base):
    """
    Immutable record of one system event.

    Rows are only ever inserted; the retention purge is the one path
    that deletes them.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_operation_created_at", "operation", "created_at"),
        Index("ix_audit_logs_entity_type_created_at", "entity_type", "created_at"),
        Index("ix_audit_logs_level_created_at", "level", "created_at"),
        Index("ix_audit_logs_user_id_created_at", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    operation = Column(enum_column(LogOperation), nullable=False)
    entity_type = Column(enum_column(EntityType), nullable=False)
    entity_id = Column(Integer)  # ID of the affected entity
    message = Column(Text, nullable=False)
    details = Column(JSON)

    # Who made the change
    user_id = Column(Integer)
    username = Column(String(50))

    level = Column(enum_column(LogLevel), default=LogLevel.INFO, nullable=False)
    source = Column(enum_column(LogSource), default=LogSource.WEB, nullable=False)
    status = Column(enum_column(LogStatus), default=LogStatus.SUCCESS, nullable=False)

    # Request provenance
    ip_address = Column(String(45))  # IPv4 or IPv6
    user_agent = Column(Text)
    correlation_id = Column(String(64))

    duration = Column(Integer)  # milliseconds
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, operation={self.operation}, entity={self.entity_type}, level={self.level})>"
