"""
Seed the default roles (Administrator, User) and permissions. Idempotent:
  python -m gatehouse.scripts.seed_roles
"""
import logging
import sys

from gatehouse.core.database import SessionLocal
from gatehouse.services.errors import AuthError
from gatehouse.services.roles import seed_default_roles
from gatehouse.services.store import ConstraintViolation, SqlAuthStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    db = SessionLocal()
    try:
        roles_created, permissions_created = seed_default_roles(SqlAuthStore(db))
        print(f"Roles created: {roles_created}, permissions created: {permissions_created}.")
        return 0
    except AuthError as e:
        logger.error("Seeding failed: %s", e.message)
        return 1
    except ConstraintViolation:
        logger.error("Seeding failed: another process seeded the same roles; run it again")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
