"""Tests for /auth endpoints, token handling and endpoint rate limiting."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from starlette.requests import Request

from app.api.dependencies.auth import rate_limit_endpoint
from app.core import cache
from app.core.exceptions import RateLimitError
from app.db.models.audit_log import AuditLog
from app.db.models.enums import EntityType, LogLevel, LogOperation

AUTH = "/api/v1/auth"
NEW_USER = {"username": "dana", "email": "dana@example.com", "password": "hunter22"}


async def _auth_entries(session_factory):
    async with session_factory() as session:
        result = await session.execute(
            select(AuditLog).where(AuditLog.entity_type == EntityType.AUTH).order_by(AuditLog.id)
        )
        return list(result.scalars().all())


async def test_register_and_login(client: AsyncClient, session_factory):
    r = await client.post(f"{AUTH}/register", json=NEW_USER)
    assert r.status_code == 201
    assert r.json()["role"] == "user"
    assert "password" not in r.json()

    r = await client.post(
        f"{AUTH}/login",
        json={"username_or_email": "dana@example.com", "password": "hunter22"}
    )
    assert r.status_code == 200
    data = r.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["username"] == "dana"
    assert data["user"]["last_login_at"] is not None

    entries = await _auth_entries(session_factory)
    assert entries[-1].message == "User logged in: dana"
    assert entries[-1].level == LogLevel.INFO


async def test_register_duplicate_is_conflict(client: AsyncClient):
    await client.post(f"{AUTH}/register", json=NEW_USER)

    r = await client.post(f"{AUTH}/register", json={**NEW_USER, "email": "other@example.com"})
    assert r.status_code == 409
    assert r.json()["error"]["message"] == "Username already registered"

    r = await client.post(f"{AUTH}/register", json={**NEW_USER, "username": "other"})
    assert r.status_code == 409
    assert r.json()["error"]["message"] == "Email already registered"


async def test_register_validates_input(client: AsyncClient):
    r = await client.post(f"{AUTH}/register", json={"username": "x", "email": "nope", "password": "1"})
    assert r.status_code == 422


async def test_failed_login_is_audited(client: AsyncClient, regular_user, session_factory):
    r = await client.post(f"{AUTH}/login", json={"username_or_email": "alice", "password": "wrong-one"})
    assert r.status_code == 401

    r = await client.post(f"{AUTH}/login", json={"username_or_email": "ghost", "password": "whatever"})
    assert r.status_code == 401

    entries = await _auth_entries(session_factory)
    assert [e.message for e in entries] == [
        "Failed login attempt for username: alice",
        "Failed login attempt for username: ghost",
    ]
    assert entries[0].entity_id == regular_user.id
    assert entries[1].entity_id is None
    assert all(e.operation == LogOperation.ERROR for e in entries)
    assert all(e.level == LogLevel.WARNING for e in entries)


async def test_me_refresh_and_logout(client: AsyncClient, regular_user):
    r = await client.post(f"{AUTH}/login", json={"username_or_email": "alice", "password": "secret123"})
    tokens = r.json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    r = await client.get(f"{AUTH}/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["email"] == "alice@example.com"

    r = await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["access_token"]

    r = await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["access_token"]})
    assert r.status_code == 401

    r = await client.post(f"{AUTH}/logout", headers=headers)
    assert r.status_code == 200

    r = await client.get(f"{AUTH}/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Token has been revoked"


def _request(path: str = "/api/v1/auth/login") -> Request:
    return Request({
        "type": "http",
        "method": "POST",
        "path": path,
        "headers": [],
        "query_string": b"",
        "client": ("203.0.113.9", 5000),
    })


async def test_rate_limit_rejects_over_quota(fake_redis):
    limiter = rate_limit_endpoint(max_requests=2, window_seconds=3600)

    await limiter(_request())
    await limiter(_request())
    with pytest.raises(RateLimitError) as exc_info:
        await limiter(_request())

    assert exc_info.value.status_code == 429
    assert "Retry-After" in exc_info.value.headers


async def test_rate_limit_fails_open_without_redis(monkeypatch):
    monkeypatch.setattr(cache, "redis_client", None)
    limiter = rate_limit_endpoint(max_requests=1, window_seconds=60)

    await limiter(_request())
    await limiter(_request())


async def test_audit_ip_comes_from_valid_forwarded_header(client: AsyncClient, session_factory):
    bogus = "x" * 60
    await client.post(
        f"{AUTH}/login",
        json={"username_or_email": "ghost", "password": "whatever"},
        headers={"X-Forwarded-For": bogus}
    )
    await client.post(
        f"{AUTH}/login",
        json={"username_or_email": "ghost", "password": "whatever"},
        headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"}
    )

    entries = await _auth_entries(session_factory)
    assert [e.ip_address for e in entries] == ["127.0.0.1", "198.51.100.7"]
