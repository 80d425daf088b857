"""
Database enums
"""
import enum
from typing import List, Type

from sqlalchemy import Enum


class UserRole(str, enum.Enum):
    """
    User role enumeration
    """
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    def __str__(self):
        return self.value

    @property
    def is_admin(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPERADMIN)


class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"

    def __str__(self):
        return self.value


class SyncSource(str, enum.Enum):
    """
    Where a product's current field values came from
    """
    MANUAL = "manual"
    API = "api"
    CSV = "csv"
    XML = "xml"

    def __str__(self):
        return self.value


class SyncStatus(str, enum.Enum):
    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"

    def __str__(self):
        return self.value


class LogOperation(str, enum.Enum):
    """
    Kind of event recorded by an audit log entry
    """
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SYNC = "sync"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"

    def __str__(self):
        return self.value


class EntityType(str, enum.Enum):
    PRODUCT = "product"
    USER = "user"
    SYSTEM = "system"
    AUTH = "auth"

    def __str__(self):
        return self.value


class LogLevel(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"

    def __str__(self):
        return self.value


class LogSource(str, enum.Enum):
    API = "api"
    WEB = "web"
    SYSTEM = "system"
    SYNC = "sync"

    def __str__(self):
        return self.value


class LogStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"

    def __str__(self):
        return self.value


def _enum_values(enum_cls: Type[enum.Enum]) -> List[str]:
    return [member.value for member in enum_cls]


def enum_column(enum_cls: Type[enum.Enum]) -> Enum:
    """
    Column type storing an enum by its value as VARCHAR
    """
    return Enum(
        enum_cls,
        values_callable=_enum_values,
        native_enum=False,
        length=20,
        validate_strings=True,
    )
