"""Default roles and permissions, and the registration default-role lookup."""

import logging
from collections.abc import Iterable

from gatehouse.models import Permission, Role, RolePermission
from gatehouse.services.errors import DefaultRoleConflictError
from gatehouse.services.store import AuthStore

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Administrator"
USER_ROLE = "User"

# name -> (description, resource, action)
DEFAULT_PERMISSIONS: dict[str, tuple[str, str, str]] = {
    "users.read": ("Read users", "users", "read"),
    "users.write": ("Write users", "users", "write"),
    "users.delete": ("Delete users", "users", "delete"),
}

# name -> (description, is_default, permission names)
DEFAULT_ROLES: dict[str, tuple[str, bool, tuple[str, ...]]] = {
    ADMIN_ROLE: ("Full system access", False, ("users.read", "users.write", "users.delete")),
    USER_ROLE: ("Standard user access", True, ("users.read",)),
}


def check_single_default(roles: Iterable[Role]) -> Role | None:
    """Return the one default role, None if there is none; raise if more than one."""
    defaults = [r for r in roles if r.is_default]
    if len(defaults) > 1:
        raise DefaultRoleConflictError([r.name for r in defaults])
    return defaults[0] if defaults else None


def get_default_role(store: AuthStore) -> Role | None:
    """Role auto-assigned at registration."""
    return check_single_default(store.list_default_roles())


def seed_default_roles(store: AuthStore) -> tuple[int, int]:
    """
    Create missing default permissions and roles with their grants. Idempotent; a
    soft-deleted default role or permission counts as present and is not revived.
    Refuses to seed a second default role. Returns (roles_created, permissions_created).
    """
    permissions: dict[str, Permission] = {}
    new_objects: list[object] = []
    for name, (description, resource, action) in DEFAULT_PERMISSIONS.items():
        existing = store.get_permission_by_name(name, include_deleted=True)
        if existing is None:
            existing = Permission(
                name=name, description=description, resource=resource, action=action
            )
            new_objects.append(existing)
        permissions[name] = existing
    permissions_created = len(new_objects)

    new_roles: list[Role] = []
    for name, (description, is_default, granted) in DEFAULT_ROLES.items():
        if store.get_role_by_name(name, include_deleted=True) is not None:
            continue
        role = Role(name=name, description=description, is_default=is_default)
        role.role_permissions = [
            RolePermission(permission=permissions[p]) for p in granted
        ]
        new_roles.append(role)

    check_single_default([*store.list_default_roles(), *new_roles])
    new_objects.extend(new_roles)
    if new_objects:
        store.save_all(new_objects)
    logger.info(
        "Seeded roles: roles_created=%s, permissions_created=%s",
        len(new_roles),
        permissions_created,
    )
    return len(new_roles), permissions_created
