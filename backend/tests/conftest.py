"""Shared fixtures: per-test SQLite database, in-memory Redis, AsyncClient, users."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./catalog-test.db")
os.environ.setdefault("SENTRY_ENABLED", "false")

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core import cache
from app.core.async_database import Base, get_db
from app.core.security import create_access_token
from app.db.models import audit_log, product, user  # noqa: F401
from app.db.models.audit_log import AuditLog
from app.db.models.enums import (
    EntityType,
    LogLevel,
    LogOperation,
    LogSource,
    LogStatus,
    UserRole,
)
from app.db.schemas.actor import Actor
from app.db.schemas.user import UserCreate
from app.db.utils.user_crud import user_crud
from main import app


class FakePipeline:
    """Queues incr/expire calls the way redis-py pipelines do."""

    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._ops = []

    def incr(self, key: str):
        self._ops.append(("incr", key))
        return self

    def expire(self, key: str, ttl: int):
        self._ops.append(("expire", key))
        return self

    async def execute(self):
        results = []
        for op, key in self._ops:
            if op == "incr":
                value = int(self._redis.store.get(key, 0)) + 1
                self._redis.store[key] = str(value)
                results.append(value)
            else:
                results.append(True)
        self._ops = []
        return results


class FakeRedis:
    """In-memory Redis for tests."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def ping(self):
        return True

    async def get(self, key: str):
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: str):
        self.store[key] = value
        return True

    async def delete(self, *keys: str):
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    def pipeline(self):
        return FakePipeline(self)

    async def aclose(self):
        return None


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # Let SAVEPOINT work under the sqlite driver
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(cache, "redis_client", redis)
    return redis


@pytest.fixture
def app_with_overrides(session_factory, fake_redis):
    """App with the database dependency pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_with_overrides):
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(db, username: str, role: UserRole = UserRole.USER, password: str = "secret123"):
    created = await user_crud.create(
        db,
        UserCreate(username=username, email=f"{username}@example.com", password=password),
        role=role
    )
    await db.commit()
    return created


def auth_headers_for(account) -> dict:
    token = create_access_token(
        data={"sub": str(account.id), "username": account.username, "role": account.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def regular_user(db):
    return await make_user(db, "alice")


@pytest.fixture
async def admin_user(db):
    return await make_user(db, "root", role=UserRole.ADMIN)


@pytest.fixture
def user_headers(regular_user):
    return auth_headers_for(regular_user)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers_for(admin_user)


@pytest.fixture
def user_actor(regular_user):
    return Actor(
        user_id=regular_user.id,
        username=regular_user.username,
        role=regular_user.role,
        ip_address="10.0.0.1"
    )


@pytest.fixture
def admin_actor(admin_user):
    return Actor(user_id=admin_user.id, username=admin_user.username, role=admin_user.role)


@pytest.fixture
def add_log(db):
    """Insert an audit entry with an explicit timestamp."""

    async def _add(
        created_at: datetime,
        message: str = "entry",
        operation: LogOperation = LogOperation.INFO,
        level: LogLevel = LogLevel.INFO,
        entity_type: EntityType = EntityType.SYSTEM,
        source: LogSource = LogSource.WEB,
        user_id=None,
        username=None,
        ip_address=None,
    ) -> AuditLog:
        entry = AuditLog(
            operation=operation,
            entity_type=entity_type,
            message=message,
            level=level,
            source=source,
            status=LogStatus.SUCCESS,
            user_id=user_id,
            username=username,
            ip_address=ip_address,
            created_at=created_at,
        )
        db.add(entry)
        await db.commit()
        return entry

    return _add
