"""Authentication orchestrator: login, register, refresh, revoke and logout."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from gatehouse.core.clock import Clock, utc_now
from gatehouse.core.security import BCRYPT_ROUNDS, hash_password
from gatehouse.models import User
from gatehouse.models.base import new_id
from gatehouse.schemas.auth import AuthResponse, RegisterRequest, UserProfile
from gatehouse.services.claims import Claims, resolve_claims
from gatehouse.services.credentials import CredentialPolicy, LockoutPolicy
from gatehouse.services.errors import (
    AccountNotFoundError,
    EmailConflictError,
    InvalidCredentialsError,
    StorageUnavailableError,
    UsernameConflictError,
)
from gatehouse.services.roles import get_default_role
from gatehouse.services.rotation import RefreshRotation, token_prefix
from gatehouse.services.store import AuthStore, ConstraintViolation, SqlAuthStore
from gatehouse.services.tokens import JwtSettings, TokenIssuer

if TYPE_CHECKING:
    from gatehouse.core.config import Settings

logger = logging.getLogger(__name__)


def to_profile(user: User, claims: Claims) -> UserProfile:
    """Public projection of an account with its sorted roles and permissions."""
    return UserProfile(
        id=str(user.id),
        username=user.username,
        email=user.email,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        phone_number=user.phone_number,
        is_email_confirmed=bool(user.is_email_confirmed),
        is_active=bool(user.is_active),
        last_login_at=user.last_login_at,
        roles=claims.sorted_roles,
        permissions=claims.sorted_permissions,
    )


class AuthService:
    """The only entry point transport layers call. Failures are raised as AuthError subclasses."""

    def __init__(
        self,
        store: AuthStore,
        issuer: TokenIssuer,
        credentials: CredentialPolicy,
        rotation: RefreshRotation,
        clock: Clock = utc_now,
        hasher: Callable[[str], str] = hash_password,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._credentials = credentials
        self._rotation = rotation
        self._clock = clock
        self._hasher = hasher

    def _response(
        self, user: User, claims: Claims, access_token: str, refresh_token: str
    ) -> AuthResponse:
        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=self._issuer.decode_expiry(access_token),
            user=to_profile(user, claims),
        )

    def login(self, identifier: str, password: str, ip_address: str | None) -> AuthResponse:
        """Check credentials and start a refresh-capable session."""
        logger.info("Login attempt from %s", ip_address or "unknown")
        try:
            user = self._credentials.authenticate(identifier, password)
        except AccountNotFoundError:
            raise InvalidCredentialsError() from None

        claims = resolve_claims(user)
        access_token = self._issuer.issue_access_token(user, claims.roles, claims.permissions)
        refresh = self._issuer.issue_refresh_token(ip_address)
        refresh.user_id = user.id
        try:
            self._store.add_refresh_token(refresh)
        except ConstraintViolation as e:
            logger.error("Login failed - refresh token rejected by store: %s", user.id)
            raise StorageUnavailableError(cause=e) from e

        logger.info("Login successful for user: %s", user.id)
        return self._response(user, claims, access_token, refresh.token)

    def register(self, body: RegisterRequest) -> AuthResponse:
        """
        Create an active, unconfirmed account with the default role (if any).
        Returns an access token only; the refresh token is the empty string.
        """
        logger.info("Registration attempt for username: %s", body.username)
        if self._store.username_exists(body.username):
            logger.warning("Registration failed - username exists: %s", body.username)
            raise UsernameConflictError()
        if self._store.email_exists(body.email):
            logger.warning("Registration failed - email exists")
            raise EmailConflictError()

        default_role = get_default_role(self._store)
        now = self._clock()
        user = User(
            id=new_id(),
            username=body.username,
            email=body.email,
            password_hash=self._hasher(body.password),
            first_name=body.first_name,
            last_name=body.last_name,
            phone_number=body.phone_number,
            is_active=True,
            is_email_confirmed=False,
            failed_login_attempts=0,
            created_at=now,
            updated_at=now,
        )
        try:
            self._store.create_user(user, [default_role] if default_role else [])
        except ConstraintViolation as e:
            # lost a race with a concurrent registration of the same username/email
            if self._store.username_exists(body.username):
                raise UsernameConflictError() from e
            if self._store.email_exists(body.email):
                raise EmailConflictError() from e
            raise StorageUnavailableError(cause=e) from e

        claims = resolve_claims(user)
        access_token = self._issuer.issue_access_token(user, claims.roles, claims.permissions)
        logger.info("Registration successful for user: %s", user.id)
        return self._response(user, claims, access_token, "")

    def refresh_session(self, refresh_token: str, ip_address: str | None) -> AuthResponse:
        logger.info("Refresh token attempt: %s...", token_prefix(refresh_token))
        result = self._rotation.rotate(refresh_token, ip_address)
        return self._response(
            result.user, result.claims, result.access_token, result.refresh_token.token
        )

    def revoke_token(self, refresh_token: str, ip_address: str | None) -> None:
        logger.info("Revoke token attempt: %s...", token_prefix(refresh_token))
        self._rotation.revoke(refresh_token, ip_address)

    def logout(self, user_id: str) -> int:
        """Revoke all of the account's refresh tokens."""
        return self._rotation.revoke_all_for_account(user_id)

    def validate_token(self, access_token: str) -> bool:
        return self._issuer.verify(access_token)

    def decode_access_token(self, access_token: str) -> dict[str, Any]:
        """Verified claims of an access token. Raises jwt.PyJWTError when invalid."""
        return self._issuer.decode(access_token)


def build_auth_service(
    db: Session,
    settings: Settings,
    clock: Clock = utc_now,
) -> AuthService:
    """Wire the services over one DB session from application settings."""
    store = SqlAuthStore(db)
    issuer = TokenIssuer(JwtSettings.from_settings(settings), clock=clock)
    rounds = settings.BCRYPT_ROUNDS or BCRYPT_ROUNDS
    return AuthService(
        store=store,
        issuer=issuer,
        credentials=CredentialPolicy(store, LockoutPolicy.from_settings(settings), clock=clock),
        rotation=RefreshRotation(store, issuer, clock=clock),
        clock=clock,
        hasher=lambda password: hash_password(password, rounds=rounds),
    )
