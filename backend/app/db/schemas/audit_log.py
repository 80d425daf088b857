"""
Audit log Pydantic schemas
"""
from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.db.models.enums import (
    LogOperation,
    EntityType,
    LogLevel,
    LogSource,
    LogStatus,
)
from app.utils.helpers import blank_to_none, ensure_utc


class AuditLogResponse(BaseModel):
    """
    Schema for a single audit log entry
    """
    id: int
    operation: LogOperation
    entity_type: EntityType
    entity_id: Optional[int] = None
    message: str
    details: Optional[Any] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    level: LogLevel
    source: LogSource
    status: LogStatus
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    correlation_id: Optional[str] = None
    duration: Optional[int] = None
    metadata: Optional[Any] = Field(None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: datetime

    class Config:
        from_attributes = True

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RecentActivity(BaseModel):
    """
    Compact entry used in the overview statistics
    """
    id: int
    operation: LogOperation
    entity_type: EntityType
    level: LogLevel
    message: str
    user_id: Optional[int] = None
    username: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class LogFilter(BaseModel):
    """
    Criteria for selecting audit log entries; all optional, combined with AND
    """
    operation: Optional[LogOperation] = None
    entity_type: Optional[EntityType] = None
    level: Optional[LogLevel] = None
    source: Optional[LogSource] = None
    user_id: Optional[int] = None
    search: Optional[str] = Field(None, min_length=1, max_length=200)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("search", mode="before")
    @classmethod
    def blank_search_is_absent(cls, value):
        return blank_to_none(value)

    @field_validator("start_date", "end_date")
    @classmethod
    def as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class OverviewCounts(BaseModel):
    total: int
    today: int
    yesterday: int
    change: int


class OperationCount(BaseModel):
    operation: LogOperation
    count: int


class LevelCount(BaseModel):
    level: LogLevel
    count: int


class OverviewStats(BaseModel):
    """
    Aggregate counts over the whole audit log
    """
    overview: OverviewCounts
    operations: List[OperationCount]
    levels: List[LevelCount]
    recent_activity: List[RecentActivity]


class TimelineBucket(BaseModel):
    """
    Entry counts for one calendar day
    """
    date: str = Field(..., description="Day in YYYY-MM-DD form")
    levels: Dict[str, int]
    total: int


class TimelineResponse(BaseModel):
    timeline: List[TimelineBucket]


class CleanupResponse(BaseModel):
    message: str
    deleted_count: int
