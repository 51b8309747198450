"""
Create all tables for local development and tests:
  python -m gatehouse.scripts.init_db
"""
import sys

from gatehouse.core.database import engine
from gatehouse.models import Base


def main() -> int:
    Base.metadata.create_all(bind=engine)
    print("Tables created: " + ", ".join(sorted(Base.metadata.tables)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
