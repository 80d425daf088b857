"""
Security utilities for authentication and authorization
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import bcrypt
from jose import JWTError, jwt

from app.core.config import settings
from app.core.exceptions import UnauthorizedError


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        True if password matches
    """
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def _create_token(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type
    })
    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token

    Args:
        data: Data to encode in token
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    return _create_token(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )


def create_refresh_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT refresh token

    Args:
        data: Data to encode in token
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    return _create_token(
        data,
        "refresh",
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )


def decode_token(token: str, expected_type: Optional[str] = "access") -> Dict[str, Any]:
    """
    Decode and verify a JWT token

    Args:
        token: JWT token to decode
        expected_type: Expected token type ("access" or "refresh"). Set to None to skip validation.

    Returns:
        Decoded token payload

    Raises:
        UnauthorizedError: If token is invalid, expired, or wrong type
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        raise UnauthorizedError("Could not validate credentials")

    if expected_type is not None and payload.get("type") != expected_type:
        raise UnauthorizedError(f"Invalid token type. Expected {expected_type} token.")

    return payload


def _revocation_key(token: str) -> str:
    return f"revoked:{token}"


async def revoke_token(token: str) -> bool:
    """
    Reject token on every later request until it would have expired anyway

    Args:
        token: Access token presented at logout

    Returns:
        False when the token is invalid or already expired
    """
    from app.core.cache import set_flag

    try:
        payload = decode_token(token, expected_type=None)
    except UnauthorizedError:
        return False

    ttl = int(payload.get("exp", 0) - datetime.now(timezone.utc).timestamp())
    if ttl <= 0:
        return False

    await set_flag(_revocation_key(token), ttl)
    return True


async def is_token_revoked(token: str) -> bool:
    from app.core.cache import has_flag

    return await has_flag(_revocation_key(token))
