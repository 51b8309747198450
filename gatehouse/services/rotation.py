"""Refresh token rotation, explicit revocation and revoke-all."""

import logging
from typing import NamedTuple

from gatehouse.core.clock import Clock, utc_now
from gatehouse.models import RefreshToken, User
from gatehouse.services.claims import Claims, resolve_claims
from gatehouse.services.errors import (
    InvalidRefreshTokenError,
    PartialRotationError,
    StorageUnavailableError,
)
from gatehouse.services.store import AuthStore, ConstraintViolation
from gatehouse.services.tokens import TokenIssuer, normalize_ip

logger = logging.getLogger(__name__)


def token_prefix(token: str | None) -> str:
    """First characters of a refresh token, safe for logs."""
    if not token:
        return ""
    return token[:10] if len(token) > 10 else token


class RotationResult(NamedTuple):
    access_token: str
    refresh_token: RefreshToken
    user: User
    claims: Claims


class RefreshRotation:
    """
    Single-use refresh tokens. Rotating a token revokes it, links it to its successor
    and issues a new access/refresh pair. Unknown, expired, revoked and replayed tokens
    all fail with the same InvalidRefreshTokenError.
    """

    def __init__(self, store: AuthStore, issuer: TokenIssuer, clock: Clock = utc_now) -> None:
        self._store = store
        self._issuer = issuer
        self._clock = clock

    def _load_active(self, presented: str) -> tuple[RefreshToken, User]:
        record = self._store.get_refresh_token(presented) if presented else None
        if record is None or not record.is_active(self._clock()):
            logger.warning(
                "Refresh token rejected - unknown or inactive: %s...",
                token_prefix(presented),
            )
            raise InvalidRefreshTokenError()
        user = self._store.get_user(record.user_id)
        if user is None or not user.is_active:
            logger.warning(
                "Refresh token rejected - owner missing or inactive: %s", record.user_id
            )
            raise InvalidRefreshTokenError()
        return record, user

    def rotate(self, presented: str, ip_address: str | None) -> RotationResult:
        """Exchange an active refresh token for a new access token and refresh token."""
        record, user = self._load_active(presented)
        ip = normalize_ip(ip_address)
        claims = resolve_claims(user)
        access_token = self._issuer.issue_access_token(user, claims.roles, claims.permissions)
        successor = self._issuer.issue_refresh_token(ip)
        successor.user_id = user.id
        try:
            revoked = self._store.revoke_refresh_token(
                record, now=self._clock(), ip_address=ip, successor=successor
            )
        except (StorageUnavailableError, ConstraintViolation) as e:
            logger.error(
                "Refresh token rotation failed in store: %s... user=%s",
                token_prefix(presented),
                user.id,
            )
            raise PartialRotationError(cause=e) from e
        if not revoked:
            # another request rotated or revoked it between our read and write
            logger.warning(
                "Refresh token rejected - concurrently revoked: %s...",
                token_prefix(presented),
            )
            raise InvalidRefreshTokenError()
        logger.info("Refresh token rotated for user: %s", user.id)
        return RotationResult(
            access_token=access_token,
            refresh_token=successor,
            user=user,
            claims=claims,
        )

    def revoke(self, presented: str, ip_address: str | None) -> None:
        """Revoke one active token. Unknown or inactive tokens raise InvalidRefreshTokenError."""
        record, user = self._load_active(presented)
        revoked = self._store.revoke_refresh_token(
            record, now=self._clock(), ip_address=normalize_ip(ip_address)
        )
        if not revoked:
            raise InvalidRefreshTokenError()
        logger.info("Refresh token revoked for user: %s", user.id)

    def revoke_all_for_account(self, user_id: str, ip_address: str | None = None) -> int:
        """Revoke every active token of the account; returns how many were revoked."""
        count = self._store.revoke_all_for_user(
            user_id, self._clock(), normalize_ip(ip_address) if ip_address else None
        )
        logger.info("Revoked %s refresh tokens for user: %s", count, user_id)
        return count

    def list_active_tokens(self, user_id: str) -> list[RefreshToken]:
        return self._store.list_active_tokens(user_id, self._clock())
