"""Resolve an account's role and permission names for token claims."""

from typing import NamedTuple

from gatehouse.models import User


class Claims(NamedTuple):
    """Deduplicated authorization claims of one account."""

    roles: frozenset[str]
    permissions: frozenset[str]

    @property
    def sorted_roles(self) -> list[str]:
        return sorted(self.roles)

    @property
    def sorted_permissions(self) -> list[str]:
        return sorted(self.permissions)


def _live(entity: object | None) -> bool:
    return entity is not None and not getattr(entity, "is_deleted", False)


def resolve_claims(user: User) -> Claims:
    """
    Flatten the user's role memberships and each role's permission grants.

    Soft-deleted memberships, roles, grants and permissions contribute nothing.
    Order of assignment does not matter; a permission granted through several roles
    appears once. Surface the sorted_* views where ordering is visible.
    """
    roles: set[str] = set()
    permissions: set[str] = set()
    for membership in user.user_roles:
        if not _live(membership) or not _live(membership.role):
            continue
        role = membership.role
        roles.add(role.name)
        for grant in role.role_permissions:
            if _live(grant) and _live(grant.permission):
                permissions.add(grant.permission.name)
    return Claims(roles=frozenset(roles), permissions=frozenset(permissions))
