"""Record store used by the auth services, and its SQLAlchemy implementation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import case, delete, func, literal, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gatehouse.models import Permission, RefreshToken, Role, User, UserRole
from gatehouse.models.base import UTCDateTime
from gatehouse.services.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class ConstraintViolation(Exception):
    """Raised when a uniqueness or foreign key constraint rejects a write."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        self.message = message
        self.detail = detail or {}
        super().__init__(message)


@dataclass(frozen=True)
class LoginKey:
    """Username-or-email identifier; the store resolves it against both unique indexes."""

    value: str

    @classmethod
    def parse(cls, raw: str | None) -> LoginKey:
        return cls(value=(raw or "").strip())


class AuthStore(Protocol):
    """
    Queries and writes the auth services need. Every mutating method is its own
    unit of work: it either persists completely or raises.
    """

    def get_user(self, user_id: str) -> User | None: ...

    def get_user_by_login(self, key: LoginKey) -> User | None: ...

    def username_exists(self, username: str) -> bool: ...

    def email_exists(self, email: str) -> bool: ...

    def create_user(self, user: User, roles: Iterable[Role] = ()) -> User: ...

    def record_failed_login(
        self, user: User, *, threshold: int, lockout_until: datetime
    ) -> User: ...

    def record_successful_login(self, user: User, now: datetime) -> User: ...

    def get_role_by_name(self, name: str, include_deleted: bool = False) -> Role | None: ...

    def get_permission_by_name(
        self, name: str, include_deleted: bool = False
    ) -> Permission | None: ...

    def list_default_roles(self) -> list[Role]: ...

    def save_all(self, objects: Iterable[Any]) -> None: ...

    def get_refresh_token(self, token: str) -> RefreshToken | None: ...

    def list_active_tokens(self, user_id: str, now: datetime) -> list[RefreshToken]: ...

    def add_refresh_token(self, record: RefreshToken) -> RefreshToken: ...

    def revoke_refresh_token(
        self,
        record: RefreshToken,
        *,
        now: datetime,
        ip_address: str | None,
        successor: RefreshToken | None = None,
    ) -> bool: ...

    def revoke_all_for_user(
        self, user_id: str, now: datetime, ip_address: str | None = None
    ) -> int: ...

    def list_tokens_expired_before(self, cutoff: datetime) -> list[RefreshToken]: ...

    def count_tokens_expired_before(self, cutoff: datetime) -> int: ...

    def delete_tokens_expired_before(self, cutoff: datetime) -> int: ...


class SqlAuthStore:
    """AuthStore backed by a SQLAlchemy session (PostgreSQL in production, SQLite in tests)."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        """Commit on success, roll back on any error. Integrity errors become ConstraintViolation."""
        try:
            yield self._session
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise ConstraintViolation(str(e.orig), {"statement": e.statement}) from e
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error("Store write failed: %s", type(e).__name__)
            raise StorageUnavailableError(cause=e) from e
        except Exception:
            self._session.rollback()
            raise

    @contextmanager
    def _reading(self) -> Iterator[Session]:
        try:
            yield self._session
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error("Store read failed: %s", type(e).__name__)
            raise StorageUnavailableError(cause=e) from e

    # Accounts

    def get_user(self, user_id: str) -> User | None:
        with self._reading() as db:
            return db.get(User, user_id)

    def get_user_by_login(self, key: LoginKey) -> User | None:
        if not key.value:
            return None
        with self._reading() as db:
            stmt = select(User).where(
                or_(User.username == key.value, User.email == key.value)
            )
            return db.scalars(stmt).first()

    def username_exists(self, username: str) -> bool:
        with self._reading() as db:
            stmt = select(func.count()).select_from(User).where(User.username == username)
            return (db.scalar(stmt) or 0) > 0

    def email_exists(self, email: str) -> bool:
        with self._reading() as db:
            stmt = select(func.count()).select_from(User).where(User.email == email)
            return (db.scalar(stmt) or 0) > 0

    def create_user(self, user: User, roles: Iterable[Role] = ()) -> User:
        with self.atomic() as db:
            db.add(user)
            for role in roles:
                user.user_roles.append(UserRole(role=role))
        return user

    def record_failed_login(
        self, user: User, *, threshold: int, lockout_until: datetime
    ) -> User:
        """
        Increment the failure counter in a single UPDATE. lockout_until is written in the
        same statement when the incremented counter reaches threshold.
        """
        attempts = User.failed_login_attempts + 1
        stmt = (
            update(User)
            .where(User.id == user.id)
            .values(
                failed_login_attempts=attempts,
                locked_out_until=case(
                    (attempts >= threshold, literal(lockout_until, UTCDateTime())),
                    else_=User.locked_out_until,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        with self.atomic() as db:
            db.execute(stmt)
        with self._reading() as db:
            db.refresh(user)
        return user

    def record_successful_login(self, user: User, now: datetime) -> User:
        with self.atomic():
            user.failed_login_attempts = 0
            user.locked_out_until = None
            user.last_login_at = now
        return user

    # Roles and permissions

    def get_role_by_name(self, name: str, include_deleted: bool = False) -> Role | None:
        stmt = select(Role).where(Role.name == name)
        if not include_deleted:
            stmt = stmt.where(Role.is_deleted.is_(False))
        with self._reading() as db:
            return db.scalars(stmt).first()

    def get_permission_by_name(
        self, name: str, include_deleted: bool = False
    ) -> Permission | None:
        stmt = select(Permission).where(Permission.name == name)
        if not include_deleted:
            stmt = stmt.where(Permission.is_deleted.is_(False))
        with self._reading() as db:
            return db.scalars(stmt).first()

    def list_default_roles(self) -> list[Role]:
        with self._reading() as db:
            stmt = (
                select(Role)
                .where(Role.is_default.is_(True), Role.is_deleted.is_(False))
                .order_by(Role.name)
            )
            return list(db.scalars(stmt))

    def save_all(self, objects: Iterable[Any]) -> None:
        with self.atomic() as db:
            db.add_all(list(objects))

    # Refresh tokens

    def get_refresh_token(self, token: str) -> RefreshToken | None:
        if not token:
            return None
        with self._reading() as db:
            return db.scalars(
                select(RefreshToken).where(
                    RefreshToken.token == token, RefreshToken.is_deleted.is_(False)
                )
            ).first()

    def list_active_tokens(self, user_id: str, now: datetime) -> list[RefreshToken]:
        with self._reading() as db:
            stmt = (
                select(RefreshToken)
                .where(
                    RefreshToken.user_id == user_id,
                    RefreshToken.is_revoked.is_(False),
                    RefreshToken.is_deleted.is_(False),
                    RefreshToken.expires_at > now,
                )
                .order_by(RefreshToken.created_at)
            )
            return list(db.scalars(stmt))

    def add_refresh_token(self, record: RefreshToken) -> RefreshToken:
        with self.atomic() as db:
            db.add(record)
        return record

    def revoke_refresh_token(
        self,
        record: RefreshToken,
        *,
        now: datetime,
        ip_address: str | None,
        successor: RefreshToken | None = None,
    ) -> bool:
        """
        Compare-and-set revoke: only a row that is still unrevoked is updated. When a
        successor is given it is inserted in the same transaction and linked as
        replaced_by_token. Returns False if another request revoked the token first.
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.id == record.id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.is_deleted.is_(False),
            )
            .values(
                is_revoked=True,
                revoked_at=now,
                revoked_by_ip=ip_address,
                replaced_by_token=successor.token if successor is not None else None,
            )
            .execution_options(synchronize_session=False)
        )
        with self.atomic() as db:
            result = db.execute(stmt)
            if result.rowcount != 1:
                db.rollback()
                return False
            if successor is not None:
                db.add(successor)
        with self._reading() as db:
            db.refresh(record)
        return True

    def revoke_all_for_user(
        self, user_id: str, now: datetime, ip_address: str | None = None
    ) -> int:
        """Revoke every active token of the account in one UPDATE (no successor links)."""
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.is_deleted.is_(False),
                RefreshToken.expires_at > now,
            )
            .values(is_revoked=True, revoked_at=now, revoked_by_ip=ip_address)
            .execution_options(synchronize_session=False)
        )
        with self.atomic() as db:
            result = db.execute(stmt)
        return result.rowcount or 0

    def list_tokens_expired_before(self, cutoff: datetime) -> list[RefreshToken]:
        with self._reading() as db:
            stmt = select(RefreshToken).where(RefreshToken.expires_at < cutoff)
            return list(db.scalars(stmt))

    def count_tokens_expired_before(self, cutoff: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(RefreshToken)
            .where(RefreshToken.expires_at < cutoff)
        )
        with self._reading() as db:
            return db.scalar(stmt) or 0

    def delete_tokens_expired_before(self, cutoff: datetime) -> int:
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        with self.atomic() as db:
            result = db.execute(stmt)
        return result.rowcount or 0
