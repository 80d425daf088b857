"""Tests for bulk product sync: counts, audit trail, idempotence, per-item isolation."""

import pytest
from sqlalchemy import select

from app.core.config import settings
from app.core.exceptions import BadRequestError
from app.db.models.audit_log import AuditLog
from app.db.models.enums import (
    LogLevel,
    LogOperation,
    LogSource,
    LogStatus,
    SyncSource,
    SyncStatus,
)
from app.db.models.product import Product
from app.db.utils.product_crud import product_crud
from app.services.sync_service import describe_error, item_sku, sync_service

WIDGET = {"sku": "A1", "name": "Widget", "price": 9.99, "category": "X", "stock": 5}


async def _entries(db, operation=None):
    stmt = select(AuditLog).order_by(AuditLog.id)
    if operation is not None:
        stmt = stmt.where(AuditLog.operation == operation)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _products(db):
    result = await db.execute(select(Product).order_by(Product.id))
    return list(result.scalars().all())


async def test_first_sync_creates_product(db, user_actor):
    """A new SKU is created and the batch is bracketed by start and summary entries."""
    response = await sync_service.sync_batch(db, [WIDGET], SyncSource.API, user_actor)

    assert response.results.model_dump() == {"created": 1, "updated": 0, "errors": 0, "total": 1}
    assert response.message == "Sync completed"
    assert response.duration >= 0

    products = await _products(db)
    assert [p.sku for p in products] == ["A1"]
    assert products[0].sync_source == SyncSource.API
    assert products[0].sync_status == SyncStatus.SYNCED
    assert products[0].last_synced_at is not None

    entries = await _entries(db)
    assert [e.operation for e in entries] == [
        LogOperation.SYNC,
        LogOperation.CREATE,
        LogOperation.SYNC,
    ]
    start, create, summary = entries
    assert start.message == "Bulk sync started for 1 products"
    assert start.status == LogStatus.PENDING
    assert create.entity_id == products[0].id
    assert create.level == LogLevel.SUCCESS
    assert summary.level == LogLevel.SUCCESS
    assert summary.message == "Bulk sync completed: 1 created, 0 updated, 0 errors"
    assert summary.details == {"created": 1, "updated": 0, "errors": 0, "total": 1}
    assert summary.duration is not None
    assert all(e.source == LogSource.API for e in entries)
    assert all(e.user_id == user_actor.user_id for e in entries)
    assert all(e.ip_address == "10.0.0.1" for e in entries)


async def test_second_identical_sync_updates(db, user_actor):
    """Re-running the same batch updates instead of creating."""
    await sync_service.sync_batch(db, [WIDGET], SyncSource.API, user_actor)
    response = await sync_service.sync_batch(db, [WIDGET], SyncSource.API, user_actor)

    assert response.results.model_dump() == {"created": 0, "updated": 1, "errors": 0, "total": 1}
    assert len(await _products(db)) == 1
    assert len(await _entries(db, LogOperation.UPDATE)) == 1


async def test_missing_sku_is_counted_and_batch_continues(db, user_actor):
    """An item without a SKU fails alone; the summary becomes a warning."""
    items = [
        {"sku": "B1", "name": "Bolt", "price": 1.5, "category": "Hardware"},
        {"name": "NoSku"},
    ]
    response = await sync_service.sync_batch(db, items, SyncSource.CSV, user_actor)

    assert response.results.model_dump() == {"created": 1, "updated": 0, "errors": 1, "total": 2}

    errors = await _entries(db, LogOperation.ERROR)
    assert len(errors) == 1
    assert errors[0].level == LogLevel.ERROR
    assert errors[0].status == LogStatus.FAILED
    assert errors[0].details["productData"] == {"name": "NoSku"}
    assert errors[0].details["index"] == 1
    assert errors[0].source == LogSource.SYNC

    summary = (await _entries(db, LogOperation.SYNC))[-1]
    assert summary.level == LogLevel.WARNING
    assert summary.message == "Bulk sync completed: 1 created, 0 updated, 1 errors"


async def test_failure_does_not_undo_earlier_items(db, user_actor):
    """Items before and after an invalid one are all applied."""
    items = [
        {"sku": "C1", "name": "First", "price": 1, "category": "X"},
        {"sku": "C2", "name": "Broken", "price": -5, "category": "X"},
        {"sku": "C3", "name": "Third", "price": 3, "category": "X"},
    ]
    response = await sync_service.sync_batch(db, items, SyncSource.API, user_actor)

    assert response.results.created == 2
    assert response.results.errors == 1
    assert [p.sku for p in await _products(db)] == ["C1", "C3"]


async def test_counts_and_entries_add_up(db, user_actor):
    """created + updated + errors == total, one success entry per applied item."""
    await sync_service.sync_batch(db, [WIDGET], SyncSource.API, user_actor)
    before = len(await _entries(db))

    items = [
        {"sku": "A1", "price": 12.5},
        {"sku": "D1", "name": "Dial", "price": 4, "category": "Y"},
        "not an object",
        {"sku": "D2", "name": "No category", "price": 4},
    ]
    response = await sync_service.sync_batch(db, items, SyncSource.API, user_actor)
    results = response.results

    assert results.created + results.updated + results.errors == results.total == len(items)
    assert (results.created, results.updated, results.errors) == (1, 1, 2)

    new_entries = (await _entries(db))[before:]
    applied = [e for e in new_entries if e.operation in (LogOperation.CREATE, LogOperation.UPDATE)]
    assert len(applied) == results.created + results.updated
    assert len([e for e in new_entries if e.operation == LogOperation.SYNC]) == 2


async def test_partial_update_keeps_unsent_fields(db, user_actor):
    """Only fields present in the item overwrite an existing product."""
    await sync_service.sync_batch(db, [WIDGET], SyncSource.API, user_actor)
    await sync_service.sync_batch(db, [{"sku": "A1", "price": 12.5}], SyncSource.XML, user_actor)

    product = (await _products(db))[0]
    assert product.price == 12.5
    assert product.name == "Widget"
    assert product.stock == 5
    assert product.sync_source == SyncSource.XML


async def test_empty_batch_still_writes_start_and_summary(db, user_actor):
    response = await sync_service.sync_batch(db, [], SyncSource.API, user_actor)

    assert response.results.model_dump() == {"created": 0, "updated": 0, "errors": 0, "total": 0}
    entries = await _entries(db)
    assert [e.operation for e in entries] == [LogOperation.SYNC, LogOperation.SYNC]
    assert entries[-1].level == LogLevel.SUCCESS


async def test_duplicate_sku_in_batch_last_write_wins(db, user_actor):
    items = [
        {"sku": "E1", "name": "Old name", "price": 1, "category": "X"},
        {"sku": "E1", "name": "New name", "price": 2, "category": "X"},
    ]
    response = await sync_service.sync_batch(db, items, SyncSource.API, user_actor)

    assert (response.results.created, response.results.updated) == (1, 1)
    products = await _products(db)
    assert len(products) == 1
    assert products[0].name == "New name"
    assert products[0].price == 2


async def test_invalid_update_flags_existing_product(db, user_actor):
    """Rejected data for a known SKU marks the product with its sync errors."""
    await sync_service.sync_batch(db, [WIDGET], SyncSource.API, user_actor)
    response = await sync_service.sync_batch(
        db, [{"sku": "A1", "price": "free"}], SyncSource.API, user_actor
    )

    assert response.results.errors == 1
    product = (await _products(db))[0]
    await db.refresh(product)
    assert product.sync_status == SyncStatus.ERROR
    assert product.price == 9.99
    assert product.sync_errors[0]["field"] == "price"
    assert product.sync_errors[0]["timestamp"]

    # A later successful sync clears the flag
    await sync_service.sync_batch(db, [{"sku": "A1", "price": 8}], SyncSource.API, user_actor)
    await db.refresh(product)
    assert product.sync_status == SyncStatus.SYNCED
    assert product.sync_errors == []


async def test_batch_must_be_a_list(db, user_actor):
    with pytest.raises(BadRequestError):
        await sync_service.sync_batch(db, {"sku": "A1"}, SyncSource.API, user_actor)
    assert await _entries(db) == []


async def test_oversized_batch_is_rejected_before_writing(db, user_actor, monkeypatch):
    monkeypatch.setattr(settings, "SYNC_MAX_BATCH_SIZE", 2)
    items = [dict(WIDGET, sku=f"S{i}") for i in range(3)]

    with pytest.raises(BadRequestError):
        await sync_service.sync_batch(db, items, SyncSource.API, user_actor)
    assert await _entries(db) == []
    assert await _products(db) == []


async def test_sync_without_actor_is_attributed_to_nobody(db):
    await sync_service.sync_batch(db, [WIDGET], SyncSource.API)

    entries = await _entries(db)
    assert all(e.user_id is None and e.username is None for e in entries)


def test_item_sku_requires_non_empty_string():
    assert item_sku({"sku": "  A1 "}) == "A1"
    assert item_sku({"sku": ""}) is None
    assert item_sku({"sku": 12}) is None
    assert item_sku(["A1"]) is None


def test_describe_error_plain_exception():
    assert describe_error(ValueError("bad thing")) == "bad thing"
    assert describe_error(RuntimeError()) == "RuntimeError"


async def test_store_failure_is_isolated_like_an_invalid_item(db, user_actor, monkeypatch):
    """A write rejected by the database fails only its own item."""
    original_create = product_crud.create

    async def create_colliding(session, data):
        if data["sku"] == "B2":
            data = {**data, "sku": "A1"}
        return await original_create(session, data)

    monkeypatch.setattr(product_crud, "create", create_colliding)
    batch = [WIDGET, {**WIDGET, "sku": "B2"}, {**WIDGET, "sku": "C3"}]

    response = await sync_service.sync_batch(db, batch, SyncSource.API, user_actor)

    assert response.results.model_dump() == {"created": 2, "updated": 0, "errors": 1, "total": 3}
    assert [p.sku for p in await _products(db)] == ["A1", "C3"]

    errors = await _entries(db, LogOperation.ERROR)
    assert len(errors) == 1
    assert errors[0].message.startswith("Sync error for product SKU B2: ")
    assert errors[0].details["index"] == 1
    assert errors[0].status == LogStatus.FAILED
