"""Test environment: settings are read at import time, so set them before any gatehouse import."""

import os

os.environ.setdefault("JWT_SECRET", "test-signing-secret-with-at-least-32-bytes!")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("APP_ENV", "dev")
