"""
Celery configuration for background tasks
"""
from celery import Celery
from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "catalog_sync",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.retention_tasks"]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
)

# Periodic tasks
celery_app.conf.beat_schedule = {}

if settings.RETENTION_SCHEDULE_ENABLED:
    celery_app.conf.beat_schedule["purge-expired-audit-logs"] = {
        "task": "purge_expired_audit_logs",
        "schedule": 86400.0,  # Daily
        "kwargs": {"days": settings.LOG_RETENTION_DAYS},
    }
