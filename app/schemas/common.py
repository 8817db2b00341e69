"""Shared schema base (camelCase JSON) and the problem-details error envelope."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON bodies use camelCase; Python code uses snake_case attribute names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProblemDetails(BaseModel):
    """Error envelope returned for every 4xx/5xx response."""

    type: str = Field(..., description="Link describing the status code")
    title: str = Field(..., description="Short summary of the problem")
    status: int = Field(..., description="HTTP status code")
    instance: str | None = Field(default=None, description="Request path")
    errors: list[str] = Field(default_factory=list, description="Human-readable error messages")
