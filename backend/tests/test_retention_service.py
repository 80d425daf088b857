"""Tests for audit log retention and the scheduled purge task."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.exceptions import BadRequestError, ForbiddenError
from app.db.models.audit_log import AuditLog
from app.db.models.enums import EntityType, LogLevel, LogOperation, LogSource, UserRole
from app.db.schemas.actor import Actor
from app.services.retention_service import retention_service
from app.tasks.retention_tasks import run_retention
from app.utils.helpers import utcnow


async def _all_entries(db):
    result = await db.execute(select(AuditLog).order_by(AuditLog.id))
    return list(result.scalars().all())


async def test_purge_removes_only_expired_entries(db, add_log, admin_actor):
    now = utcnow()
    await add_log(now - timedelta(days=45), message="old")
    await add_log(now - timedelta(days=2), message="recent")

    deleted = await retention_service.purge_older_than(db, admin_actor, days=30, now=now)

    assert deleted == 1
    entries = await _all_entries(db)
    assert [e.message for e in entries][0] == "recent"
    assert len(entries) == 2

    record = entries[-1]
    assert record.operation == LogOperation.DELETE
    assert record.entity_type == EntityType.SYSTEM
    assert record.level == LogLevel.INFO
    assert record.message == "Log cleanup completed: 1 logs older than 30 days were deleted"
    assert record.details == {"deletedCount": 1, "daysToKeep": 30}
    assert record.user_id == admin_actor.user_id


async def test_no_expired_entry_survives(db, add_log, admin_actor):
    now = utcnow()
    for age in (1, 6, 7, 8, 20):
        await add_log(now - timedelta(days=age, minutes=1))

    await retention_service.purge_older_than(db, admin_actor, days=7, now=now)

    cutoff = now - timedelta(days=7)
    remaining = await _all_entries(db)
    purge_record = remaining[-1]
    assert all(
        e.created_at.replace(tzinfo=None) >= cutoff.replace(tzinfo=None)
        for e in remaining
        if e.id != purge_record.id
    )
    assert len(remaining) == 3


async def test_non_admin_cannot_purge(db, add_log, user_actor):
    await add_log(utcnow() - timedelta(days=90))

    with pytest.raises(ForbiddenError):
        await retention_service.purge_older_than(db, user_actor, days=30)

    assert len(await _all_entries(db)) == 1


async def test_superadmin_can_purge(db):
    actor = Actor(user_id=1, username="owner", role=UserRole.SUPERADMIN)
    assert await retention_service.purge_older_than(db, actor, days=30) == 0


@pytest.mark.parametrize("days", [0, -3, 2.5, True])
async def test_days_must_be_positive_integer(db, admin_actor, days):
    with pytest.raises(BadRequestError):
        await retention_service.purge_older_than(db, admin_actor, days=days)
    assert await _all_entries(db) == []


async def test_scheduled_purge_runs_as_system(session_factory, db, add_log):
    await add_log(utcnow() - timedelta(days=40), message="stale")

    deleted = await run_retention(session_factory, days=30)

    assert deleted == 1
    async with session_factory() as session:
        entries = await _all_entries(session)
    assert len(entries) == 1
    assert entries[0].source == LogSource.SYSTEM
    assert entries[0].username == "system"
