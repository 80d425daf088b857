"""
Product service for single-record business logic
"""
from typing import Any, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.db.models.enums import LogOperation, EntityType, LogLevel, SyncSource
from app.db.models.product import Product
from app.db.schemas.actor import Actor
from app.db.schemas.pagination import PaginatedResponse
from app.db.schemas.product import ProductCreate, ProductUpdate, ProductFilter, ProductResponse
from app.db.utils.product_crud import product_crud
from app.services.audit_service import audit_service
from app.utils.helpers import json_safe, utcnow


def diff_fields(before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    {field: {"from": old, "to": new}} for every field whose value changed
    """
    return {
        field: {"from": before.get(field), "to": value}
        for field, value in after.items()
        if before.get(field) != value
    }


class ProductService:
    """
    Service class for product-related business logic
    """

    async def list_products(
        self,
        db: AsyncSession,
        product_filter: ProductFilter,
        page: int = 1,
        page_size: int = 10
    ) -> PaginatedResponse[ProductResponse]:
        products, total = await product_crud.search(
            db,
            product_filter,
            skip=(page - 1) * page_size,
            limit=page_size
        )
        return PaginatedResponse[ProductResponse].create(
            items=[ProductResponse.model_validate(product) for product in products],
            total=total,
            page=page,
            page_size=page_size
        )

    async def get_product(
        self,
        db: AsyncSession,
        product_id: int
    ) -> Product:
        """
        Get product by ID

        Raises:
            NotFoundError: If product not found
        """
        product = await product_crud.get(db, product_id)
        if not product:
            raise NotFoundError("Product")
        return product

    async def create_product(
        self,
        db: AsyncSession,
        product_in: ProductCreate,
        actor: Actor
    ) -> Product:
        """
        Create a product entered by hand

        Raises:
            ConflictError: If the SKU is already in use
        """
        if await product_crud.get_by_sku(db, product_in.sku):
            raise ConflictError("Product with this SKU already exists")

        data = product_in.model_dump(mode="json")
        data.update(last_synced_at=utcnow(), sync_source=SyncSource.MANUAL)
        product = await product_crud.create(db, data)

        await audit_service.log_action(
            db,
            operation=LogOperation.CREATE,
            entity_type=EntityType.PRODUCT,
            entity_id=product.id,
            message=f"Product created: {product.name} (SKU: {product.sku})",
            level=LogLevel.SUCCESS,
            actor=actor,
            details={"sku": product.sku, "name": product.name}
        )
        await db.commit()
        return product

    async def update_product(
        self,
        db: AsyncSession,
        product_id: int,
        product_in: ProductUpdate,
        actor: Actor
    ) -> Product:
        """
        Apply the fields that were sent to an existing product

        Raises:
            NotFoundError: If product not found
            ConflictError: If the new SKU belongs to another product
        """
        product = await self.get_product(db, product_id)

        update_data = product_in.model_dump(mode="json", exclude_unset=True)
        new_sku = update_data.get("sku")
        if new_sku and new_sku != product.sku and await product_crud.get_by_sku(db, new_sku):
            raise ConflictError("Product with this SKU already exists")

        before = json_safe({field: getattr(product, field) for field in update_data})
        changes = diff_fields(before, update_data)

        update_data["last_synced_at"] = utcnow()
        product = await product_crud.update(db, product, update_data)

        await audit_service.log_action(
            db,
            operation=LogOperation.UPDATE,
            entity_type=EntityType.PRODUCT,
            entity_id=product.id,
            message=f"Product updated: {product.name} (SKU: {product.sku})",
            level=LogLevel.SUCCESS,
            actor=actor,
            details={"changes": changes, "sku": product.sku, "name": product.name}
        )
        await db.commit()
        return product

    async def delete_product(
        self,
        db: AsyncSession,
        product_id: int,
        actor: Actor
    ) -> None:
        """
        Permanently delete a product

        Raises:
            NotFoundError: If product not found
        """
        product = await product_crud.delete(db, product_id)
        if not product:
            raise NotFoundError("Product")

        await audit_service.log_action(
            db,
            operation=LogOperation.DELETE,
            entity_type=EntityType.PRODUCT,
            entity_id=product_id,
            message=f"Product deleted: {product.name} (SKU: {product.sku})",
            level=LogLevel.WARNING,
            actor=actor,
            details={"sku": product.sku, "name": product.name}
        )
        await db.commit()

    async def list_categories(self, db: AsyncSession) -> List[str]:
        return await product_crud.distinct_values(db, Product.category)

    async def list_vendors(self, db: AsyncSession) -> List[str]:
        return await product_crud.distinct_values(db, Product.vendor)


# Create singleton instance
product_service = ProductService()
