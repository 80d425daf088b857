"""
User database model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime

from app.core.async_database import Base
from app.db.models.enums import UserRole, enum_column
from app.utils.helpers import utcnow


class User(Base):
    """
    User model for authentication and audit attribution
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Status & Security
    is_active = Column(Boolean, default=True, nullable=False)
    role = Column(enum_column(UserRole), default=UserRole.USER, nullable=False)

    # Timestamps
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, email={self.email}, role={self.role})>"
