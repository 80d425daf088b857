"""
Authentication endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.async_database import get_db
from app.api.dependencies.auth import (
    get_actor,
    get_anonymous_actor,
    get_bearer_token,
    get_current_active_user,
    rate_limit_endpoint,
)
from app.db.models.user import User
from app.db.schemas.actor import Actor
from app.db.schemas.user import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    TokenPair,
    UserCreate,
    UserResponse,
)
from app.services.user_service import user_service

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_anonymous_actor),
    _: None = Depends(rate_limit_endpoint(max_requests=5, window_seconds=60))
):
    """
    Register a new user (public endpoint)
    Rate limited: 5 requests per minute per IP
    """
    return await user_service.create_user(db, user_in, actor)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_anonymous_actor),
    _: None = Depends(rate_limit_endpoint(max_requests=10, window_seconds=60))
):
    """
    Login with username or email
    Rate limited: 10 requests per minute per IP
    """
    return await user_service.authenticate_user(
        db,
        credentials.username_or_email,
        credentials.password,
        actor
    )


@router.post("/refresh", response_model=TokenPair)
async def refresh_access_token(
    request: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Refresh access token using a valid refresh token
    """
    return await user_service.refresh_tokens(db, request.refresh_token)


@router.get("/me", response_model=UserResponse)
async def read_current_user(
    current_user: User = Depends(get_current_active_user)
):
    return current_user


@router.post("/logout")
async def logout(
    token: str = Depends(get_bearer_token),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Logout user by revoking their current token

    The token will be invalidated and cannot be used again.
    """
    await user_service.logout(db, token, actor)
    return {"message": "Successfully logged out"}
