"""
Acting identity and request provenance attached to audit entries
"""
from pydantic import BaseModel
from typing import Optional, TYPE_CHECKING

from app.db.models.enums import UserRole

if TYPE_CHECKING:
    from fastapi import Request
    from app.db.models.user import User


class Actor(BaseModel):
    """
    Who triggered an operation, and from where
    """
    user_id: Optional[int] = None
    username: Optional[str] = None
    role: Optional[UserRole] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    correlation_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is not None and self.role.is_admin

    @classmethod
    def from_request(
        cls,
        request: Optional["Request"] = None,
        user: Optional["User"] = None
    ) -> "Actor":
        """
        Build an actor from the authenticated user and the incoming request

        Args:
            request: FastAPI request object
            user: Authenticated user, if any

        Returns:
            Actor instance
        """
        ip_address = None
        user_agent = None
        correlation_id = None

        if request is not None:
            ip_address = getattr(request.state, "client_ip", None)
            if not ip_address and request.client:
                ip_address = request.client.host
            user_agent = request.headers.get("user-agent")
            correlation_id = getattr(request.state, "correlation_id", None)

        return cls(
            user_id=user.id if user else None,
            username=user.username if user else None,
            role=user.role if user else None,
            ip_address=ip_address,
            user_agent=user_agent,
            correlation_id=correlation_id,
        )

    @classmethod
    def system(cls) -> "Actor":
        """Actor for scheduled jobs running without a user"""
        return cls(username="system", role=UserRole.ADMIN)
