"""Health check endpoint: database connectivity and registration default role."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gatehouse.core.config import settings
from gatehouse.core.database import check_db_connected, get_db
from gatehouse.schemas.health import HealthResponse
from gatehouse.services.errors import AuthError
from gatehouse.services.roles import get_default_role
from gatehouse.services.store import SqlAuthStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service health, database connectivity and the role new accounts receive.
    Used by load balancers and monitoring; never fails on a degraded store.
    """
    if not check_db_connected(db):
        return HealthResponse(environment=settings.APP_ENV, database="disconnected")

    default_role: str | None = None
    try:
        role = get_default_role(SqlAuthStore(db))
        default_role = role.name if role is not None else None
    except AuthError as e:
        logger.warning("Health check: default role lookup failed: %s", e.message)

    return HealthResponse(
        environment=settings.APP_ENV,
        database="connected",
        default_role=default_role,
    )
