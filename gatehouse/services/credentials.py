"""Password verification with per-account brute-force lockout."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from gatehouse.core.clock import Clock, utc_now
from gatehouse.core.security import verify_password
from gatehouse.models import User
from gatehouse.services.errors import (
    AccountLockedError,
    AccountNotFoundError,
    InvalidCredentialsError,
)
from gatehouse.services.store import AuthStore, LoginKey

if TYPE_CHECKING:
    from gatehouse.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_LOCKOUT_THRESHOLD = 5
DEFAULT_LOCKOUT_WINDOW = timedelta(minutes=30)


@dataclass(frozen=True)
class LockoutPolicy:
    """Consecutive failures before lockout, and how long the lockout lasts."""

    threshold: int = DEFAULT_LOCKOUT_THRESHOLD
    window: timedelta = DEFAULT_LOCKOUT_WINDOW

    @classmethod
    def from_settings(cls, settings: Settings) -> LockoutPolicy:
        return cls(
            threshold=settings.LOCKOUT_THRESHOLD,
            window=timedelta(minutes=settings.LOCKOUT_MINUTES),
        )


class CredentialPolicy:
    """Checks a presented password and maintains the account's failure counter and lockout."""

    def __init__(
        self,
        store: AuthStore,
        policy: LockoutPolicy | None = None,
        clock: Clock = utc_now,
        verify: Callable[[str, str], bool] = verify_password,
    ) -> None:
        self._store = store
        self._policy = policy or LockoutPolicy()
        self._clock = clock
        self._verify = verify

    def authenticate(self, identifier: str, password: str) -> User:
        """
        Return the account for identifier (username or email) if password matches.

        Raises AccountNotFoundError (callers must surface it as InvalidCredentialsError),
        AccountLockedError while locked (the password is not checked), and
        InvalidCredentialsError for an inactive account or a wrong password. A wrong
        password is counted before raising; the attempt that reaches the threshold
        raises AccountLockedError.
        """
        key = LoginKey.parse(identifier)
        user = self._store.get_user_by_login(key)
        if user is None:
            logger.warning("Login failed - account not found")
            raise AccountNotFoundError(key.value)

        now = self._clock()
        if user.is_locked_out(now):
            logger.warning("Login failed - account locked: %s", user.id)
            raise AccountLockedError(user.locked_out_until)

        if not user.is_active:
            logger.warning("Login failed - account inactive: %s", user.id)
            raise InvalidCredentialsError()

        if not self._verify(password, user.password_hash):
            user = self._store.record_failed_login(
                user,
                threshold=self._policy.threshold,
                lockout_until=now + self._policy.window,
            )
            logger.warning(
                "Login failed - invalid password: %s, failed attempts: %s",
                user.id,
                user.failed_login_attempts,
            )
            if user.is_locked_out(now):
                logger.warning(
                    "Account locked until %s: %s",
                    user.locked_out_until.isoformat(),
                    user.id,
                )
                raise AccountLockedError(user.locked_out_until)
            raise InvalidCredentialsError()

        return self._store.record_successful_login(user, now)
