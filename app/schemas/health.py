"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel


class HealthResponse(CamelModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    database: Literal["connected", "disconnected"] | None = Field(
        default=None,
        description="Database connectivity status when check is performed",
    )
    email_provider: Literal["brevo", "log"] = Field(
        description="Where verification emails go: Brevo API or the application log",
    )
    storage_provider: Literal["filesystem", "s3"] = Field(
        description="Blob storage backend for profile images",
    )
