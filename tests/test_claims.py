"""Unit tests for gatehouse.services.claims: role and permission resolution."""

import unittest

from gatehouse.services.claims import resolve_claims
from gatehouse.services.store import SqlAuthStore
from tests.support import create_account, make_permission, make_role, make_session


class TestResolveClaims(unittest.TestCase):
    """Claims are flattened across roles and deduplicated."""

    def setUp(self) -> None:
        self.session = make_session()
        self.store = SqlAuthStore(self.session)
        self.read = make_permission("reports.read")
        self.write = make_permission("reports.write")
        self.export = make_permission("reports.export")

    def tearDown(self) -> None:
        self.session.close()

    def test_account_without_roles_has_empty_claims(self) -> None:
        user = create_account(self.store)
        claims = resolve_claims(user)
        self.assertEqual(claims.roles, frozenset())
        self.assertEqual(claims.permissions, frozenset())

    def test_permission_granted_by_two_roles_appears_once(self) -> None:
        analyst = make_role("Analyst", [self.read, self.export])
        editor = make_role("Editor", [self.read, self.write])
        user = create_account(self.store, roles=(analyst, editor))

        claims = resolve_claims(user)

        self.assertEqual(claims.roles, frozenset({"Analyst", "Editor"}))
        self.assertEqual(
            claims.permissions,
            frozenset({"reports.read", "reports.write", "reports.export"}),
        )
        self.assertEqual(claims.sorted_permissions.count("reports.read"), 1)

    def test_assignment_order_does_not_matter(self) -> None:
        analyst = make_role("Analyst", [self.read, self.export])
        editor = make_role("Editor", [self.write, self.read])
        first = create_account(self.store, "first", "first@x.com", roles=(analyst, editor))
        second = create_account(self.store, "second", "second@x.com", roles=(editor, analyst))

        self.assertEqual(resolve_claims(first), resolve_claims(second))

    def test_sorted_views_are_lexicographic(self) -> None:
        zeta = make_role("Zeta", [self.write])
        alpha = make_role("Alpha", [self.export, self.read])
        user = create_account(self.store, roles=(zeta, alpha))

        claims = resolve_claims(user)

        self.assertEqual(claims.sorted_roles, ["Alpha", "Zeta"])
        self.assertEqual(
            claims.sorted_permissions,
            ["reports.export", "reports.read", "reports.write"],
        )

    def test_role_without_permissions_contributes_role_only(self) -> None:
        guest = make_role("Guest", [])
        user = create_account(self.store, roles=(guest,))
        claims = resolve_claims(user)
        self.assertEqual(claims.roles, frozenset({"Guest"}))
        self.assertEqual(claims.permissions, frozenset())

    def test_soft_deleted_grant_drops_permission(self) -> None:
        analyst = make_role("Analyst", [self.read, self.export])
        user = create_account(self.store, roles=(analyst,))
        grant = next(g for g in analyst.role_permissions if g.permission.name == "reports.export")
        grant.is_deleted = True
        self.store.save_all([grant])

        claims = resolve_claims(user)

        self.assertEqual(claims.roles, frozenset({"Analyst"}))
        self.assertEqual(claims.permissions, frozenset({"reports.read"}))

    def test_soft_deleted_membership_drops_role_and_its_permissions(self) -> None:
        analyst = make_role("Analyst", [self.read])
        editor = make_role("Editor", [self.write])
        user = create_account(self.store, roles=(analyst, editor))
        membership = next(m for m in user.user_roles if m.role.name == "Editor")
        membership.is_deleted = True
        self.store.save_all([membership])

        claims = resolve_claims(user)

        self.assertEqual(claims.roles, frozenset({"Analyst"}))
        self.assertEqual(claims.permissions, frozenset({"reports.read"}))

    def test_soft_deleted_role_or_permission_contributes_nothing(self) -> None:
        analyst = make_role("Analyst", [self.read, self.export])
        editor = make_role("Editor", [self.write])
        user = create_account(self.store, roles=(analyst, editor))
        editor.is_deleted = True
        self.export.is_deleted = True
        self.store.save_all([editor, self.export])

        claims = resolve_claims(user)

        self.assertEqual(claims.roles, frozenset({"Analyst"}))
        self.assertEqual(claims.permissions, frozenset({"reports.read"}))


if __name__ == "__main__":
    unittest.main()
