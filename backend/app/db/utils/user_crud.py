"""
User lookups and registration
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from app.db.models.user import User
from app.db.models.enums import UserRole
from app.db.schemas.user import UserCreate
from app.db.utils.crud import CRUDBase
from app.core.security import hash_password


class CRUDUser(CRUDBase[User, UserCreate, UserCreate]):

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        return await self.get_by(db, User.email, email)

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        return await self.get_by(db, User.username, username)

    async def get_by_username_or_email(
        self,
        db: AsyncSession,
        identifier: str
    ) -> Optional[User]:
        """
        User whose username or email equals identifier; login accepts either
        """
        result = await db.execute(
            select(User).where(or_(User.username == identifier, User.email == identifier))
        )
        return result.scalars().first()

    async def create(
        self,
        db: AsyncSession,
        obj_in: UserCreate,
        role: UserRole = UserRole.USER
    ) -> User:
        """
        Store a new account with its password hashed

        Registration always passes the default role; admin accounts are
        created by operators or test fixtures.
        """
        return await super().create(db, {
            "username": obj_in.username,
            "email": obj_in.email,
            "hashed_password": hash_password(obj_in.password),
            "role": role,
        })


user_crud = CRUDUser(User)
