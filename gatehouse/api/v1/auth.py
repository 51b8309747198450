"""Auth endpoints (login, register, refresh, revoke, logout, me) and bearer dependencies."""

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from gatehouse.core.config import get_settings
from gatehouse.core.database import get_db
from gatehouse.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RevokeTokenRequest,
    TokenValidationResponse,
)
from gatehouse.services.auth import AuthService, build_auth_service
from gatehouse.services.errors import (
    AccountLockedError,
    AuthError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    PartialRotationError,
    RegistrationConflictError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def get_auth_service(db: Annotated[Session, Depends(get_db)]) -> AuthService:
    """Dependency: AuthService bound to this request's DB session."""
    return build_auth_service(db, get_settings())


def get_client_ip(request: Request) -> str:
    """Client address: first X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def _http_error(e: AuthError) -> HTTPException:
    """Map a service failure to its HTTP status."""
    if isinstance(e, AccountLockedError):
        return HTTPException(status_code=status.HTTP_423_LOCKED, detail=e.message)
    if isinstance(e, InvalidCredentialsError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message, headers=_BEARER_CHALLENGE
        )
    if isinstance(e, RegistrationConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    if isinstance(e, InvalidRefreshTokenError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    if isinstance(e, (PartialRotationError, StorageUnavailableError)):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
            headers={"Retry-After": "1"},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """
    Authenticate with username or email and password; returns an access token and refresh token.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    ip_address = get_client_ip(request)
    try:
        return service.login(body.username_or_email, body.password, ip_address)
    except AuthError as e:
        logger.warning(
            "Login rejected",
            extra={"reason": type(e).__name__, "ip_address": ip_address},
        )
        raise _http_error(e) from e


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """Create an account with the default role. No refresh token is issued."""
    try:
        return service.register(body)
    except AuthError as e:
        logger.warning("Registration rejected", extra={"reason": type(e).__name__})
        raise _http_error(e) from e


@router.post("/refresh", response_model=AuthResponse)
def refresh(
    body: RefreshTokenRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """Exchange a refresh token for a new access token and refresh token (single use)."""
    try:
        return service.refresh_session(body.refresh_token, get_client_ip(request))
    except AuthError as e:
        logger.warning("Token refresh rejected", extra={"reason": type(e).__name__})
        raise _http_error(e) from e


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the caller from its claims. Raises 401."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers=_BEARER_CHALLENGE,
        )
    try:
        payload = service.decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=_BEARER_CHALLENGE,
        )
    try:
        return CurrentUser.from_claims(payload)
    except (KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers=_BEARER_CHALLENGE,
        )


@router.post("/revoke", response_model=MessageResponse)
def revoke(
    body: RevokeTokenRequest,
    request: Request,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Revoke one refresh token. Unknown or already revoked tokens are reported as 400."""
    try:
        service.revoke_token(body.refresh_token, get_client_ip(request))
    except InvalidRefreshTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token not found or already revoked.",
        ) from e
    except AuthError as e:
        raise _http_error(e) from e
    return MessageResponse(message="Token revoked successfully")


@router.post("/logout", response_model=MessageResponse)
def logout(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Revoke all refresh tokens of the caller."""
    try:
        service.logout(current_user.id)
    except AuthError as e:
        raise _http_error(e) from e
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=CurrentUser)
def me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Identity and authorization claims of the caller."""
    return current_user


@router.get("/validate", response_model=TokenValidationResponse)
def validate(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenValidationResponse:
    """Check signature, issuer, audience and lifetime of the bearer token."""
    if credentials is None:
        return TokenValidationResponse(valid=False)
    return TokenValidationResponse(valid=service.validate_token(credentials.credentials))
