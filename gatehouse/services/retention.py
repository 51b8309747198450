"""Refresh token retention: hard-delete tokens expired longer than REFRESH_TOKEN_RETENTION_DAYS."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from gatehouse.core.clock import utc_now
from gatehouse.services.store import AuthStore

if TYPE_CHECKING:
    from gatehouse.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(
    store: AuthStore, settings: "Settings", now: datetime | None = None
) -> int:
    """
    Delete refresh tokens whose expiry is older than the retention window.

    Revoked-but-unexpired tokens are kept for the audit trail. Returns tokens_deleted.
    Idempotent: safe to run repeatedly.
    """
    if not settings.REFRESH_TOKEN_RETENTION_ENABLED:
        logger.info(
            "Retention is disabled (REFRESH_TOKEN_RETENTION_ENABLED=false); skipping."
        )
        return 0

    cutoff = (now or utc_now()) - timedelta(days=settings.REFRESH_TOKEN_RETENTION_DAYS)
    deleted_count = store.delete_tokens_expired_before(cutoff)

    if deleted_count > 0:
        logger.info(
            "Retention run: cutoff=%s, tokens_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count


def count_retention_candidates(
    store: AuthStore, settings: "Settings", now: datetime | None = None
) -> int:
    """Tokens run_retention would delete right now; 0 when retention is disabled."""
    if not settings.REFRESH_TOKEN_RETENTION_ENABLED:
        return 0
    cutoff = (now or utc_now()) - timedelta(days=settings.REFRESH_TOKEN_RETENTION_DAYS)
    return store.count_tokens_expired_before(cutoff)
