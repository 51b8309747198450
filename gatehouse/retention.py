"""
CLI entrypoint for the refresh token retention job. Run from cron, e.g.:

  python -m gatehouse.retention

Or daily: 0 3 * * * cd /path/to/gatehouse && .venv/bin/python -m gatehouse.retention

--dry-run reports how many tokens a real run would delete (0 while retention is
disabled) without deleting them.
"""

import argparse
import logging
import sys

from gatehouse.core.config import get_settings
from gatehouse.core.database import SessionLocal
from gatehouse.services.errors import StorageUnavailableError
from gatehouse.services.retention import count_retention_candidates, run_retention
from gatehouse.services.store import SqlAuthStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Delete refresh tokens expired longer than REFRESH_TOKEN_RETENTION_DAYS."""
    parser = argparse.ArgumentParser(description="Gatehouse refresh token retention sweep.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only count the tokens that would be deleted",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    db = SessionLocal()
    try:
        store = SqlAuthStore(db)
        if args.dry_run:
            if not settings.REFRESH_TOKEN_RETENTION_ENABLED:
                logger.info("Dry run: retention is disabled; nothing would be deleted.")
            candidates = count_retention_candidates(store, settings)
            logger.info("Dry run: tokens_to_delete=%s", candidates)
            return 0
        tokens_deleted = run_retention(store, settings)
        logger.info("Retention completed: tokens_deleted=%s", tokens_deleted)
        return 0
    except StorageUnavailableError as e:
        logger.exception("Retention job failed: %s", e.message)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
