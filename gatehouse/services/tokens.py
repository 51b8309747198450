"""Signed access tokens (JWT, HMAC) and opaque refresh tokens."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

from gatehouse.core.clock import Clock, utc_now
from gatehouse.models import RefreshToken, User
from gatehouse.models.base import new_id
from gatehouse.models.refresh_token import IP_ADDRESS_MAX_LEN

if TYPE_CHECKING:
    from gatehouse.core.config import Settings

logger = logging.getLogger(__name__)

# Random bytes per refresh token before URL-safe base64 encoding (86 chars).
REFRESH_TOKEN_BYTES = 64

UNKNOWN_IP = "unknown"


@dataclass(frozen=True)
class JwtSettings:
    """Immutable signing and lifetime configuration for TokenIssuer."""

    secret: str = field(repr=False)
    issuer: str
    audience: str
    algorithm: str = "HS256"
    access_token_minutes: int = 15
    refresh_token_days: int = 7
    clock_skew_minutes: int = 5
    validate_issuer: bool = True
    validate_audience: bool = True
    validate_lifetime: bool = True
    validate_signing_key: bool = True
    refresh_token_bytes: int = REFRESH_TOKEN_BYTES

    def __post_init__(self) -> None:
        if not self.secret or not self.secret.strip():
            raise ValueError("JWT signing secret must be set and non-empty")

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtSettings:
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            algorithm=settings.JWT_ALGORITHM,
            access_token_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            refresh_token_days=settings.REFRESH_TOKEN_EXPIRE_DAYS,
            clock_skew_minutes=settings.CLOCK_SKEW_MINUTES,
            validate_issuer=settings.JWT_VALIDATE_ISSUER,
            validate_audience=settings.JWT_VALIDATE_AUDIENCE,
            validate_lifetime=settings.JWT_VALIDATE_LIFETIME,
            validate_signing_key=settings.JWT_VALIDATE_SIGNING_KEY,
        )


def normalize_ip(ip_address: str | None) -> str:
    ip = (ip_address or "").strip()
    return ip[:IP_ADDRESS_MAX_LEN] if ip else UNKNOWN_IP


class TokenIssuer:
    """Mint and check access tokens; mint refresh token records (unsaved, no owner)."""

    def __init__(self, jwt_settings: JwtSettings, clock: Clock = utc_now) -> None:
        self._settings = jwt_settings
        self._clock = clock

    def build_claims(
        self, user: User, roles: Iterable[str], permissions: Iterable[str]
    ) -> dict[str, Any]:
        """Claims for user at the current clock time. Roles and permissions are sorted."""
        issued_at = int(self._clock().timestamp())
        expires = issued_at + self._settings.access_token_minutes * 60
        return {
            "sub": str(user.id),
            "user_id": str(user.id),
            "username": user.username,
            "email": user.email,
            "is_active": bool(user.is_active),
            "is_email_confirmed": bool(user.is_email_confirmed),
            "role": sorted(set(roles)),
            "permission": sorted(set(permissions)),
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
            "iat": issued_at,
            "exp": expires,
        }

    def issue_access_token(
        self, user: User, roles: Iterable[str], permissions: Iterable[str]
    ) -> str:
        payload = self.build_claims(user, roles, permissions)
        return jwt.encode(
            payload,
            self._settings.secret,
            algorithm=self._settings.algorithm,
        )

    def issue_refresh_token(self, ip_address: str | None) -> RefreshToken:
        """New refresh token record from the OS CSPRNG. The caller sets user_id and persists it."""
        now = self._clock()
        return RefreshToken(
            id=new_id(),
            token=secrets.token_urlsafe(self._settings.refresh_token_bytes),
            created_at=now,
            expires_at=now + timedelta(days=self._settings.refresh_token_days),
            created_by_ip=normalize_ip(ip_address),
            is_revoked=False,
            is_deleted=False,
        )

    def decode_expiry(self, token: str) -> datetime | None:
        """
        Read the exp claim without verifying the signature. For response metadata only,
        never for trust decisions. Returns None for malformed tokens.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return None
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            return None
        return datetime.fromtimestamp(exp, UTC)

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify signature, issuer, audience and lifetime; return the claims.
        Raises jwt.PyJWTError on invalid or expired token.
        """
        s = self._settings
        options = {
            "verify_signature": s.validate_signing_key,
            "verify_iss": s.validate_issuer,
            "verify_aud": s.validate_audience,
            # lifetime is checked against the injected clock below
            "verify_exp": False,
            "verify_nbf": False,
            "verify_iat": False,
            "require": ["exp", "iat", "sub"],
        }
        payload = jwt.decode(
            token,
            s.secret,
            algorithms=[s.algorithm],
            options=options,
            issuer=s.issuer if s.validate_issuer else None,
            audience=s.audience if s.validate_audience else None,
        )
        if s.validate_lifetime:
            self._check_lifetime(payload)
        return payload

    def verify(self, token: str) -> bool:
        """Full verification; False (never an exception) for any invalid token."""
        try:
            self.decode(token)
        except jwt.PyJWTError as e:
            logger.debug("Access token rejected: %s", type(e).__name__)
            return False
        return True

    def _check_lifetime(self, payload: dict[str, Any]) -> None:
        now = self._clock().timestamp()
        leeway = self._settings.clock_skew_minutes * 60
        exp = payload.get("exp")
        iat = payload.get("iat")
        for name, value in (("exp", exp), ("iat", iat)):
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise jwt.DecodeError(f"{name} claim must be a number")
        if now >= exp + leeway:
            raise jwt.ExpiredSignatureError("Signature has expired")
        if iat > now + leeway:
            raise jwt.ImmatureSignatureError("The token is not yet valid (iat)")
