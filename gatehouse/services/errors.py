"""Typed authentication failures. Transport layers map each class to a status code."""

from datetime import datetime


class AuthError(Exception):
    """Base class for every failure raised by the authentication services."""

    default_message = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    """Wrong secret, inactive account or unknown identifier (deliberately indistinguishable)."""

    default_message = "Invalid username or password."


class AccountLockedError(AuthError):
    """Raised while the account is inside its lockout window."""

    def __init__(self, locked_until: datetime) -> None:
        self.locked_until = locked_until
        super().__init__(
            f"User account is locked until {locked_until:%Y-%m-%d %H:%M:%S} UTC."
        )


class AccountNotFoundError(AuthError):
    """Internal only: identifier resolved to no account. Callers surface InvalidCredentialsError."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__("Account not found.")


class RegistrationConflictError(AuthError):
    """Base for uniqueness conflicts at registration."""

    field = ""


class UsernameConflictError(RegistrationConflictError):
    default_message = "Username already exists."
    field = "username"


class EmailConflictError(RegistrationConflictError):
    default_message = "Email already exists."
    field = "email"


class InvalidRefreshTokenError(AuthError):
    """Unknown, expired or revoked refresh token (deliberately indistinguishable)."""

    default_message = "Invalid refresh token."


class PartialRotationError(AuthError):
    """
    The store failed part-way through a rotation. Retry with the same presented
    token: it succeeds if nothing was persisted, or fails as invalid if the revoke was.
    """

    default_message = "Refresh token rotation did not complete; retry the request."
    retryable = True

    def __init__(self, message: str | None = None, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class StorageUnavailableError(AuthError):
    """Unexpected store failure. Always retryable; never an authentication outcome."""

    default_message = "Storage is temporarily unavailable."
    retryable = True

    def __init__(self, message: str | None = None, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class DefaultRoleConflictError(AuthError):
    """More than one role is marked as the registration default."""

    def __init__(self, role_names: list[str]) -> None:
        self.role_names = role_names
        super().__init__(
            "At most one default role is allowed; found: " + ", ".join(sorted(role_names))
        )
