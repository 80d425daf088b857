"""
Product Pydantic schemas
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime

from app.db.models.enums import ProductStatus, SyncSource, SyncStatus
from app.utils.helpers import blank_to_none, dedupe

# Columns that cannot be cleared by sending null
REQUIRED_FIELDS = ("name", "sku", "price", "category", "stock", "status")


class ProductImage(BaseModel):
    url: str
    alt: Optional[str] = None


class SyncErrorEntry(BaseModel):
    field: Optional[str] = None
    message: str
    timestamp: Optional[datetime] = None


class ProductBase(BaseModel):
    """
    Base product schema with common attributes
    """
    name: str = Field(..., min_length=1, max_length=255)
    sku: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=100)
    stock: int = Field(0, ge=0)
    status: ProductStatus = ProductStatus.ACTIVE
    images: List[ProductImage] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    vendor: Optional[str] = Field(None, max_length=255)

    class Config:
        str_strip_whitespace = True

    @field_validator("tags")
    @classmethod
    def unique_tags(cls, value: List[str]) -> List[str]:
        return dedupe(value)


class ProductCreate(ProductBase):
    """
    Schema for creating a product (manually or from a sync item)
    """
    pass


class ProductUpdate(BaseModel):
    """
    Schema for updating a product; only fields that are sent are applied
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    sku: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    stock: Optional[int] = Field(None, ge=0)
    status: Optional[ProductStatus] = None
    images: Optional[List[ProductImage]] = None
    tags: Optional[List[str]] = None
    vendor: Optional[str] = Field(None, max_length=255)

    class Config:
        str_strip_whitespace = True

    @field_validator("tags")
    @classmethod
    def unique_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return dedupe(value) if value is not None else None

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "ProductUpdate":
        for field in REQUIRED_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class ProductFilter(BaseModel):
    """
    Listing filters for products
    """
    category: Optional[str] = None
    status: Optional[ProductStatus] = None
    vendor: Optional[str] = None
    search: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("category", "vendor", "search", mode="before")
    @classmethod
    def blank_is_absent(cls, value):
        return blank_to_none(value)


class ProductResponse(ProductBase):
    """
    Schema for product response
    """
    id: int
    last_synced_at: Optional[datetime] = None
    sync_source: SyncSource
    sync_status: SyncStatus
    sync_errors: List[SyncErrorEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("images", "tags", "sync_errors", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value if value is not None else []