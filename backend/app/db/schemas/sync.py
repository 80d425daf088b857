"""
Bulk sync Pydantic schemas
"""
from pydantic import AliasChoices, BaseModel, Field
from typing import Any, List

from app.db.models.enums import SyncSource


class SyncRequest(BaseModel):
    """
    Batch of incoming product payloads.

    Items are left untyped here: each one is validated on its own while
    the batch runs, so one malformed item cannot reject the whole request.
    """
    items: List[Any] = Field(..., validation_alias=AliasChoices("items", "products"))
    source: SyncSource = SyncSource.API


class SyncResult(BaseModel):
    created: int = 0
    updated: int = 0
    errors: int = 0
    total: int = 0


class SyncResponse(BaseModel):
    message: str = "Sync completed"
    results: SyncResult
    duration: int = Field(..., description="Elapsed wall time in milliseconds")
