"""
User service for business logic
"""
from datetime import datetime, timezone
from typing import Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.user import User
from app.db.models.enums import LogOperation, EntityType, LogLevel
from app.db.schemas.actor import Actor
from app.db.schemas.user import UserCreate
from app.db.utils.user_crud import user_crud
from app.core.exceptions import ConflictError, UnauthorizedError
from app.core.security import (
    revoke_token,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from app.services.audit_service import audit_service


def issue_tokens(user: User) -> Dict[str, str]:
    """
    Create an access/refresh token pair for a user
    """
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.value
    }
    return {
        "access_token": create_access_token(data=claims),
        "refresh_token": create_refresh_token(data=claims),
        "token_type": "bearer"
    }


class UserService:
    """
    Service class for user-related business logic
    """

    async def create_user(
        self,
        db: AsyncSession,
        user_in: UserCreate,
        actor: Actor
    ) -> User:
        """
        Create a new user

        Args:
            db: Database session
            user_in: User creation data
            actor: Request provenance for the audit entry

        Returns:
            Created user

        Raises:
            ConflictError: If username or email already exists
        """
        if await user_crud.get_by_username(db, user_in.username):
            raise ConflictError("Username already registered")

        if await user_crud.get_by_email(db, user_in.email):
            raise ConflictError("Email already registered")

        user = await user_crud.create(db, user_in)

        await audit_service.log_action(
            db,
            operation=LogOperation.CREATE,
            entity_type=EntityType.USER,
            entity_id=user.id,
            message=f"New user registered: {user.username}",
            level=LogLevel.INFO,
            actor=actor.model_copy(update={"user_id": user.id, "username": user.username}),
            details={"email": user.email}
        )
        await db.commit()
        return user

    async def authenticate_user(
        self,
        db: AsyncSession,
        username_or_email: str,
        password: str,
        actor: Actor
    ) -> Dict[str, Any]:
        """
        Authenticate user and return tokens

        Failed attempts are recorded before the error is raised.

        Args:
            db: Database session
            username_or_email: Username or email address
            password: Password
            actor: Request provenance for the audit entry

        Returns:
            Dictionary with tokens and the user

        Raises:
            UnauthorizedError: If authentication fails or the user is inactive
        """
        user = await user_crud.get_by_username_or_email(db, username_or_email)

        if user is None or not verify_password(password, user.hashed_password):
            await audit_service.log_action(
                db,
                operation=LogOperation.ERROR,
                entity_type=EntityType.AUTH,
                entity_id=user.id if user else None,
                message=f"Failed login attempt for username: {username_or_email}",
                level=LogLevel.WARNING,
                actor=actor
            )
            await db.commit()
            raise UnauthorizedError("Incorrect username/email or password")

        if not user.is_active:
            raise UnauthorizedError("User account is inactive")

        user.last_login_at = datetime.now(timezone.utc)
        db.add(user)

        await audit_service.log_action(
            db,
            operation=LogOperation.INFO,
            entity_type=EntityType.AUTH,
            entity_id=user.id,
            message=f"User logged in: {user.username}",
            level=LogLevel.INFO,
            actor=actor.model_copy(
                update={"user_id": user.id, "username": user.username, "role": user.role}
            )
        )
        await db.commit()
        await db.refresh(user)

        return {**issue_tokens(user), "user": user}

    async def refresh_tokens(
        self,
        db: AsyncSession,
        refresh_token: str
    ) -> Dict[str, str]:
        """
        Exchange a valid refresh token for a new token pair

        Raises:
            UnauthorizedError: If the token is invalid or the user is gone or inactive
        """
        payload = decode_token(refresh_token, expected_type="refresh")

        try:
            user_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise UnauthorizedError("Invalid refresh token")

        user = await user_crud.get(db, user_id)
        if user is None:
            raise UnauthorizedError("User not found")

        if not user.is_active:
            raise UnauthorizedError("User account is inactive")

        return issue_tokens(user)

    async def logout(
        self,
        db: AsyncSession,
        token: str,
        actor: Actor
    ) -> None:
        """
        Revoke the given access token
        """
        await revoke_token(token)

        await audit_service.log_action(
            db,
            operation=LogOperation.INFO,
            entity_type=EntityType.AUTH,
            entity_id=actor.user_id,
            message=f"User logged out: {actor.username}",
            level=LogLevel.INFO,
            actor=actor
        )
        await db.commit()


# Create singleton instance
user_service = UserService()
