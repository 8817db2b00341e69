"""Health check endpoint: database connectivity plus the configured email/storage backends."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.email import email_provider_name

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(db: Annotated[Session, Depends(get_db)]) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    email_provider = email_provider_name(settings)

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        email_provider=email_provider,
        storage_provider=settings.STORAGE_PROVIDER,
    )
