"""SQLAlchemy ORM models."""

from gatehouse.models.base import Base
from gatehouse.models.refresh_token import RefreshToken
from gatehouse.models.role import Permission, Role, RolePermission, UserRole
from gatehouse.models.user import User

__all__ = [
    "Base",
    "Permission",
    "RefreshToken",
    "Role",
    "RolePermission",
    "User",
    "UserRole",
]
