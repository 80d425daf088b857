"""
Product-specific CRUD operations
"""
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from app.db.models.product import Product
from app.db.schemas.product import ProductCreate, ProductUpdate, ProductFilter
from app.db.utils.crud import CRUDBase
from app.db.utils.filters import contains_ci


class CRUDProduct(CRUDBase[Product, ProductCreate, ProductUpdate]):
    """
    CRUD operations for Product model
    """

    async def get_by_sku(self, db: AsyncSession, sku: str) -> Optional[Product]:
        return await self.get_by(db, Product.sku, sku)

    def build_filters(self, product_filter: ProductFilter) -> list:
        filters = []

        if product_filter.category:
            filters.append(Product.category == product_filter.category)

        if product_filter.status is not None:
            filters.append(Product.status == product_filter.status)

        if product_filter.vendor:
            filters.append(Product.vendor == product_filter.vendor)

        # Free text matches name, SKU or description
        if product_filter.search:
            filters.append(or_(
                contains_ci(Product.name, product_filter.search),
                contains_ci(Product.sku, product_filter.search),
                contains_ci(Product.description, product_filter.search)
            ))

        return filters

    async def search(
        self,
        db: AsyncSession,
        product_filter: ProductFilter,
        skip: int = 0,
        limit: int = 10
    ) -> tuple[List[Product], int]:
        """
        Search products with filters, newest first

        Args:
            db: Database session
            product_filter: Category, status, vendor and free-text criteria
            skip: Number of records to skip
            limit: Number of records to return

        Returns:
            Tuple of (products, total_count)
        """
        return await self.get_page(db, self.build_filters(product_filter), skip=skip, limit=limit)

    async def distinct_values(
        self,
        db: AsyncSession,
        column
    ) -> List[str]:
        """
        Distinct non-empty values of a product column, sorted
        """
        result = await db.execute(
            select(column).where(column.is_not(None)).where(column != "").distinct().order_by(column)
        )
        return list(result.scalars().all())


# Create a singleton instance
product_crud = CRUDProduct(Product)
