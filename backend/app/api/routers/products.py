"""
Product catalog endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.async_database import get_db
from app.api.dependencies.auth import get_actor
from app.api.dependencies.pagination import pagination_dependency
from app.db.models.enums import ProductStatus
from app.db.schemas.actor import Actor
from app.db.schemas.pagination import PaginatedResponse, PaginationParams
from app.db.schemas.product import (
    ProductCreate,
    ProductFilter,
    ProductResponse,
    ProductUpdate,
)
from app.db.schemas.sync import SyncRequest, SyncResponse
from app.services.product_service import product_service
from app.services.sync_service import sync_service

router = APIRouter(dependencies=[Depends(get_actor)])


async def get_product_filter(
    category: Optional[str] = Query(None),
    product_status: Optional[ProductStatus] = Query(None, alias="status"),
    vendor: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100)
) -> ProductFilter:
    return ProductFilter(category=category, status=product_status, vendor=vendor, search=search)


@router.get("/", response_model=PaginatedResponse[ProductResponse])
async def list_products(
    product_filter: ProductFilter = Depends(get_product_filter),
    pagination: PaginationParams = Depends(pagination_dependency(10)),
    db: AsyncSession = Depends(get_db)
):
    """
    List products, newest first
    """
    return await product_service.list_products(
        db,
        product_filter,
        page=pagination.page,
        page_size=pagination.page_size
    )


@router.get("/categories/list", response_model=List[str])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await product_service.list_categories(db)


@router.get("/vendors/list", response_model=List[str])
async def list_vendors(db: AsyncSession = Depends(get_db)):
    return await product_service.list_vendors(db)


@router.post("/sync", response_model=SyncResponse)
async def sync_products(
    sync_in: SyncRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Create or update products in bulk, matched by SKU

    Items that fail are counted and logged; the rest of the batch still runs.
    """
    return await sync_service.sync_batch(db, sync_in.items, sync_in.source, actor)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await product_service.get_product(db, product_id)


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_in: ProductCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a product by hand
    """
    return await product_service.create_product(db, product_in, actor)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_in: ProductUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the fields sent in the body
    """
    return await product_service.update_product(db, product_id, product_in, actor)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    await product_service.delete_product(db, product_id, actor)
    return {"message": "Product deleted successfully"}
