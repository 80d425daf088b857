"""
Generic data access shared by the product, audit log and user stores
"""
from typing import TypeVar, Generic, Type, Optional, List, Any, Dict, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement
from pydantic import BaseModel

from app.core.async_database import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


def apply_filters(stmt: Select, filters: Sequence[ColumnElement]) -> Select:
    for clause in filters:
        stmt = stmt.where(clause)
    return stmt


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base store for one model

    Writes only flush; committing is left to the calling service so that
    a service can group its change and its audit entry in one transaction.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        return await self.get_by(db, self.model.id, id)

    async def get_by(
        self,
        db: AsyncSession,
        column: Any,
        value: Any
    ) -> Optional[ModelType]:
        """
        Single record whose unique column equals value
        """
        result = await db.execute(select(self.model).where(column == value))
        return result.scalar_one_or_none()

    async def get_page(
        self,
        db: AsyncSession,
        filters: Sequence[ColumnElement] = (),
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[ModelType], int]:
        """
        Records matching filters, newest first, and the total match count

        Args:
            db: Database session
            filters: SQL predicates combined with AND
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (records, total_count)
        """
        stmt = apply_filters(select(self.model), filters).order_by(
            desc(self.model.created_at), desc(self.model.id)
        )
        result = await db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all()), await self.count(db, filters)

    async def create(
        self,
        db: AsyncSession,
        obj_in: CreateSchemaType | Dict[str, Any]
    ) -> ModelType:
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(mode="json")
        db_obj = self.model(**data)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | Dict[str, Any]
    ) -> ModelType:
        """
        Apply the given fields to db_obj; unset schema fields are left alone
        """
        if isinstance(obj_in, dict):
            changes = obj_in
        else:
            changes = obj_in.model_dump(mode="json", exclude_unset=True)

        for field, value in changes.items():
            setattr(db_obj, field, value)

        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        obj = await self.get(db, id)
        if obj is not None:
            await db.delete(obj)
            await db.flush()
        return obj

    async def count(
        self,
        db: AsyncSession,
        filters: Sequence[ColumnElement] = ()
    ) -> int:
        stmt = apply_filters(select(func.count()).select_from(self.model), filters)
        result = await db.execute(stmt)
        return result.scalar_one()
