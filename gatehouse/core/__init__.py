"""Core app configuration, clock and database."""

from gatehouse.core.clock import Clock, utc_now
from gatehouse.core.config import get_settings, settings
from gatehouse.core.database import get_db

__all__ = ["Clock", "get_settings", "settings", "get_db", "utc_now"]
