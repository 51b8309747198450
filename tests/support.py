"""Shared builders for service tests: in-memory SQLite, frozen clock, fast bcrypt."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gatehouse.core.security import hash_password
from gatehouse.models import Base, Permission, Role, RolePermission, User
from gatehouse.services.auth import AuthService
from gatehouse.services.credentials import CredentialPolicy, LockoutPolicy
from gatehouse.services.roles import seed_default_roles
from gatehouse.services.rotation import RefreshRotation
from gatehouse.services.store import SqlAuthStore
from gatehouse.services.tokens import JwtSettings, TokenIssuer

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"
PASSWORD = "Str0ng!Passw0rd"
FAST_ROUNDS = 4


class FrozenClock:
    """Deterministic clock; advance() moves it forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(UTC).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_session() -> Session:
    """Fresh in-memory database with all tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def make_jwt_settings(**overrides: Any) -> JwtSettings:
    values: dict[str, Any] = {
        "secret": TEST_SECRET,
        "issuer": "gatehouse-test",
        "audience": "gatehouse-test-clients",
        "access_token_minutes": 15,
        "refresh_token_days": 7,
        "clock_skew_minutes": 5,
    }
    values.update(overrides)
    return JwtSettings(**values)


def fast_hash(password: str) -> str:
    return hash_password(password, rounds=FAST_ROUNDS)


@dataclass
class Harness:
    session: Session
    store: SqlAuthStore
    clock: FrozenClock
    issuer: TokenIssuer
    credentials: CredentialPolicy
    rotation: RefreshRotation
    service: AuthService


def make_harness(seed_roles: bool = True, verify: Any = None) -> Harness:
    """Wire every service over one in-memory store with a shared frozen clock."""
    session = make_session()
    store = SqlAuthStore(session)
    clock = FrozenClock()
    issuer = TokenIssuer(make_jwt_settings(), clock=clock)
    credential_kwargs: dict[str, Any] = {"clock": clock}
    if verify is not None:
        credential_kwargs["verify"] = verify
    credentials = CredentialPolicy(store, LockoutPolicy(), **credential_kwargs)
    rotation = RefreshRotation(store, issuer, clock=clock)
    service = AuthService(
        store=store,
        issuer=issuer,
        credentials=credentials,
        rotation=rotation,
        clock=clock,
        hasher=fast_hash,
    )
    if seed_roles:
        seed_default_roles(store)
    return Harness(session, store, clock, issuer, credentials, rotation, service)


def create_account(
    store: SqlAuthStore,
    username: str = "alice",
    email: str = "alice@x.com",
    password: str = PASSWORD,
    roles: tuple[Role, ...] = (),
    is_active: bool = True,
) -> User:
    user = User(
        username=username,
        email=email,
        password_hash=fast_hash(password),
        first_name="Alice",
        last_name="Liddell",
        is_active=is_active,
        is_email_confirmed=False,
    )
    return store.create_user(user, roles)


def make_permission(name: str) -> Permission:
    resource, _, action = name.partition(".")
    return Permission(name=name, description=name, resource=resource, action=action or "any")


def make_role(name: str, permissions: list[Permission], is_default: bool = False) -> Role:
    role = Role(name=name, description=f"{name} role", is_default=is_default)
    role.role_permissions = [RolePermission(permission=p) for p in permissions]
    return role
