"""
Bulk product synchronization

Each item in a batch is looked up by SKU and either updates the existing
product or creates a new one. Items run strictly in input order, each in
its own savepoint, and every outcome is written to the audit log. A failing
item is counted and recorded but never aborts the rest of the batch.
"""
import time
from typing import Any, List, Optional, Tuple
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BadRequestError
from app.db.models.enums import (
    LogOperation,
    EntityType,
    LogLevel,
    LogSource,
    LogStatus,
    SyncSource,
    SyncStatus,
)
from app.db.models.product import Product
from app.db.schemas.actor import Actor
from app.db.schemas.product import ProductCreate, ProductUpdate
from app.db.schemas.sync import SyncResult, SyncResponse
from app.db.utils.product_crud import product_crud
from app.services.audit_service import audit_service
from app.utils.helpers import elapsed_ms, utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Most recent sync errors kept on a product
MAX_SYNC_ERRORS = 20

# Audit log source for each product sync source
LOG_SOURCES = {
    SyncSource.MANUAL: LogSource.WEB,
    SyncSource.API: LogSource.API,
    SyncSource.CSV: LogSource.SYNC,
    SyncSource.XML: LogSource.SYNC,
}


class SyncItemError(Exception):
    """An incoming item cannot be processed at all"""


def describe_error(exc: Exception) -> str:
    """
    Short human-readable reason for a failed item
    """
    if isinstance(exc, ValidationError):
        return "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'item'}: {error['msg']}"
            for error in exc.errors()
        )
    if isinstance(exc, SQLAlchemyError) and getattr(exc, "orig", None) is not None:
        return str(exc.orig)
    return str(exc) or type(exc).__name__


def item_sku(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    sku = item.get("sku")
    if not isinstance(sku, str) or not sku.strip():
        return None
    return sku.strip()


class SyncService:
    """
    Service applying batches of incoming product records
    """

    async def sync_batch(
        self,
        db: AsyncSession,
        items: List[Any],
        source: SyncSource,
        actor: Optional[Actor] = None
    ) -> SyncResponse:
        """
        Create or update a product for every item in the batch

        Args:
            db: Database session
            items: Incoming product payloads, processed in order
            source: Where the batch came from
            actor: Acting user and request provenance

        Returns:
            Result counts and elapsed milliseconds

        Raises:
            BadRequestError: If the batch itself is malformed (nothing is written)
        """
        if not isinstance(items, list):
            raise BadRequestError("Products must be an array")
        if len(items) > settings.SYNC_MAX_BATCH_SIZE:
            raise BadRequestError(
                f"Batch too large: {len(items)} items (maximum {settings.SYNC_MAX_BATCH_SIZE})"
            )

        source = SyncSource(source)
        log_source = LOG_SOURCES[source]
        results = SyncResult(total=len(items))
        started = time.perf_counter()

        logger.info(
            f"Bulk sync started: {len(items)} items from {source}",
            extra={"sync_source": str(source), "batch_size": len(items)}
        )
        await audit_service.log_action(
            db,
            operation=LogOperation.SYNC,
            entity_type=EntityType.PRODUCT,
            message=f"Bulk sync started for {len(items)} products",
            level=LogLevel.INFO,
            source=log_source,
            actor=actor,
            status=LogStatus.PENDING,
            metadata={"sync_source": source}
        )
        await db.commit()

        for index, item in enumerate(items):
            try:
                async with db.begin_nested():
                    product, created = await self._apply_item(db, item, source)
            except Exception as exc:
                results.errors += 1
                await self._record_failure(db, index, item, exc, log_source, actor)
            else:
                if created:
                    results.created += 1
                else:
                    results.updated += 1
                await audit_service.log_action(
                    db,
                    operation=LogOperation.CREATE if created else LogOperation.UPDATE,
                    entity_type=EntityType.PRODUCT,
                    entity_id=product.id,
                    message=(
                        f"Product synced ({'created' if created else 'updated'}): "
                        f"{product.name} (SKU: {product.sku})"
                    ),
                    level=LogLevel.SUCCESS,
                    source=log_source,
                    actor=actor,
                    details={"sku": product.sku, "name": product.name}
                )
            # Completed items stay applied even if a later one fails
            await db.commit()

        duration = elapsed_ms(started, time.perf_counter())

        await audit_service.log_action(
            db,
            operation=LogOperation.SYNC,
            entity_type=EntityType.PRODUCT,
            message=(
                f"Bulk sync completed: {results.created} created, "
                f"{results.updated} updated, {results.errors} errors"
            ),
            level=LogLevel.SUCCESS if results.errors == 0 else LogLevel.WARNING,
            source=log_source,
            actor=actor,
            details=results.model_dump(),
            duration=duration,
            metadata={"sync_source": source}
        )
        await db.commit()

        logger.info(
            f"Bulk sync completed in {duration}ms",
            extra={"sync_source": str(source), **results.model_dump()}
        )

        return SyncResponse(results=results, duration=duration)

    async def _apply_item(
        self,
        db: AsyncSession,
        item: Any,
        source: SyncSource
    ) -> Tuple[Product, bool]:
        """
        Upsert one item by SKU

        Returns:
            Tuple of (product, created)
        """
        if not isinstance(item, dict):
            raise SyncItemError("Item must be an object")

        sku = item_sku(item)
        if sku is None:
            raise SyncItemError("SKU is required")

        sync_fields = {
            "last_synced_at": utcnow(),
            "sync_source": source,
            "sync_status": SyncStatus.SYNCED,
            "sync_errors": [],
        }

        existing = await product_crud.get_by_sku(db, sku)
        if existing is not None:
            # Only the fields present in the item are overwritten
            data = ProductUpdate.model_validate(item).model_dump(mode="json", exclude_unset=True)
            data.update(sync_fields)
            return await product_crud.update(db, existing, data), False

        data = ProductCreate.model_validate(item).model_dump(mode="json")
        data.update(sync_fields)
        return await product_crud.create(db, data), True

    async def _record_failure(
        self,
        db: AsyncSession,
        index: int,
        item: Any,
        exc: Exception,
        log_source: LogSource,
        actor: Optional[Actor]
    ) -> None:
        sku = item_sku(item)
        reason = describe_error(exc)

        logger.warning(
            f"Sync item {index} failed: {reason}",
            extra={"sku": sku, "error_type": type(exc).__name__}
        )

        if isinstance(exc, ValidationError) and sku is not None:
            await self._flag_product(db, sku, exc)

        await audit_service.log_action(
            db,
            operation=LogOperation.ERROR,
            entity_type=EntityType.PRODUCT,
            message=f"Sync error for product SKU {sku or '<missing>'}: {reason}",
            level=LogLevel.ERROR,
            source=log_source,
            actor=actor,
            details={"error": reason, "index": index, "productData": item},
            status=LogStatus.FAILED
        )

    async def _flag_product(
        self,
        db: AsyncSession,
        sku: str,
        exc: ValidationError
    ) -> None:
        """
        Mark an existing product whose incoming data was rejected
        """
        timestamp = utcnow().isoformat()
        try:
            async with db.begin_nested():
                product = await product_crud.get_by_sku(db, sku)
                if product is None:
                    return

                sync_errors = list(product.sync_errors or [])
                for error in exc.errors():
                    sync_errors.append({
                        "field": ".".join(str(part) for part in error["loc"]) or None,
                        "message": error["msg"],
                        "timestamp": timestamp,
                    })
                product.sync_errors = sync_errors[-MAX_SYNC_ERRORS:]
                product.sync_status = SyncStatus.ERROR
        except SQLAlchemyError as flag_exc:
            logger.warning(f"Could not flag product {sku} with sync errors: {flag_exc}")


# Create singleton instance
sync_service = SyncService()
