"""
Authentication dependencies
"""
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import time
import logging

from app.core.async_database import get_db
from app.core.cache import incr_window
from app.core.config import settings
from app.core.exceptions import ForbiddenError, RateLimitError, UnauthorizedError
from app.core.security import decode_token, is_token_revoked
from app.db.models.user import User
from app.db.schemas.actor import Actor
from app.db.utils.user_crud import user_crud

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def rate_limit_endpoint(max_requests: int = 5, window_seconds: int = 60):
    """
    Fixed-window limit per client IP and path, for login and registration

    Requests are allowed through when Redis cannot be reached.
    """
    async def rate_limiter(request: Request):
        if not settings.RATE_LIMIT_ENABLED:
            return

        client_ip = getattr(request.state, "client_ip", None)
        if not client_ip and request.client:
            client_ip = request.client.host

        endpoint = request.url.path
        current_time = int(time.time())
        window_key = current_time // window_seconds
        redis_key = f"ratelimit:{endpoint}:{client_ip}:{window_key}"

        try:
            request_count = await incr_window(redis_key, window_seconds + 1)
        except Exception as e:
            # Fail open if Redis is unavailable
            logger.warning(f"Endpoint rate limiting failed (allowing request): {e}")
            return

        if request_count > max_requests:
            raise RateLimitError(retry_after=window_seconds - (current_time % window_seconds))

    return rate_limiter


async def get_bearer_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """
    Raw bearer token from the Authorization header

    Raises:
        UnauthorizedError: If the header is missing
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    User named by the access token's `sub` claim

    Raises:
        UnauthorizedError: If token is invalid, revoked, or user not found
    """
    # Logged-out tokens stay revoked until expiry
    if await is_token_revoked(token):
        raise UnauthorizedError("Token has been revoked")

    payload = decode_token(token)
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Could not validate credentials")

    user = await user_crud.get(db, user_id)
    if user is None:
        raise UnauthorizedError("User not found")

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current active user

    Raises:
        UnauthorizedError: If user is inactive
    """
    if not current_user.is_active:
        raise UnauthorizedError("User account is inactive")
    return current_user


async def get_current_admin_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current admin or superadmin user

    Raises:
        ForbiddenError: If user is not admin or superadmin
    """
    if not current_user.role.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


async def get_actor(
    request: Request,
    current_user: User = Depends(get_current_active_user)
) -> Actor:
    """
    Acting user plus request provenance, for audit entries
    """
    return Actor.from_request(request, current_user)


async def get_anonymous_actor(request: Request) -> Actor:
    """
    Request provenance for unauthenticated endpoints
    """
    return Actor.from_request(request)
