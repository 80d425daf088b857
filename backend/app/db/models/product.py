"""
Product model for the catalog
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON

from app.core.async_database import Base
from app.db.models.enums import ProductStatus, SyncSource, SyncStatus, enum_column
from app.utils.helpers import utcnow


class Product(Base):
    """
    Catalog item, uniquely identified by SKU
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text)
    price = Column(Float, nullable=False)
    category = Column(String(100), index=True, nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    status = Column(enum_column(ProductStatus), default=ProductStatus.ACTIVE, index=True, nullable=False)
    images = Column(JSON, default=list)  # [{"url": ..., "alt": ...}]
    tags = Column(JSON, default=list)
    vendor = Column(String(255))

    # Sync bookkeeping
    last_synced_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    sync_source = Column(enum_column(SyncSource), default=SyncSource.MANUAL, nullable=False)
    sync_status = Column(enum_column(SyncStatus), default=SyncStatus.SYNCED, nullable=False)
    sync_errors = Column(JSON, default=list)  # [{"field": ..., "message": ..., "timestamp": ...}]

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Product(id={self.id}, sku={self.sku}, name={self.name})>"
