"""ORM models for roles, permissions and their join tables (RBAC)."""

from sqlalchemy import Boolean, Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from gatehouse.models.base import Base, UTCDateTime, new_id, utcnow


class Role(Base):
    """
    Named role. is_default roles are auto-assigned at registration; at most one
    default is allowed (checked by the role service, not the schema). Withdrawn roles
    are flagged is_deleted, never removed, and every read skips them.
    """

    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=False, default="")
    is_default = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    role_permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Role {self.name} default={self.is_default}>"


class Permission(Base):
    """Named permission, e.g. users.read (resource 'users', action 'read')."""

    __tablename__ = "permissions"
    __table_args__ = (UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),)

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=False, default="")
    resource = Column(String(100), nullable=False)
    action = Column(String(50), nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Permission {self.name}>"


class UserRole(Base):
    """Account to role membership; the composite key forbids duplicate pairs. Soft-deleted."""

    __tablename__ = "user_roles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    is_deleted = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", lazy="selectin")


class RolePermission(Base):
    """Role to permission grant; the composite key forbids duplicate pairs. Soft-deleted."""

    __tablename__ = "role_permissions"

    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission_id = Column(
        String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True
    )
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    is_deleted = Column(Boolean, nullable=False, default=False)

    role = relationship("Role", back_populates="role_permissions")
    permission = relationship("Permission", lazy="selectin")
