"""
Create an account (e.g. first admin). Run from project root:
  python -m gatehouse.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m gatehouse.scripts.create_user admin admin@example.org 'S3cure!pass' Administrator
"""
import argparse
import sys

from gatehouse.core.config import get_settings
from gatehouse.core.database import SessionLocal
from gatehouse.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    hash_password,
    is_complex_password,
)
from gatehouse.models import User
from gatehouse.services.roles import USER_ROLE
from gatehouse.services.store import ConstraintViolation, SqlAuthStore


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a Gatehouse account (no registration UI).")
    parser.add_argument("username", help=f"Username ({USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("role", nargs="?", default=USER_ROLE, help="Role name (must exist)")
    args = parser.parse_args()

    username = args.username.strip()
    email = args.email.strip()
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        print("Invalid username length.", file=sys.stderr)
        return 1
    if "@" not in email:
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1
    if not is_complex_password(args.password):
        print("Password must mix lower, upper, digit and special characters.", file=sys.stderr)
        return 1

    settings = get_settings()
    db = SessionLocal()
    try:
        store = SqlAuthStore(db)
        if store.username_exists(username) or store.email_exists(email):
            print(f"User '{username}' or email '{email}' already exists.", file=sys.stderr)
            return 1
        role = store.get_role_by_name(args.role)
        if role is None:
            print(
                f"Role '{args.role}' not found; run python -m gatehouse.scripts.seed_roles first.",
                file=sys.stderr,
            )
            return 1
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(args.password, rounds=settings.BCRYPT_ROUNDS),
            is_active=True,
            is_email_confirmed=True,
        )
        try:
            store.create_user(user, [role])
        except ConstraintViolation:
            print(f"User '{username}' or email '{email}' already exists.", file=sys.stderr)
            return 1
        print(f"Created user '{username}' with role '{role.name}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
