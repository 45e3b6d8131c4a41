"""Health check schemas."""

from typing import Dict

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Health check response schema.

    ``database`` and ``redis`` are ``ok`` or ``error: <reason>``; ``redis`` is
    ``disabled`` when caching is switched off.
    """

    status: str
    database: str
    redis: str
    deals_by_store: Dict[str, int] = Field(default_factory=dict)
