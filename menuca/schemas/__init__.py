"""Request and response schemas, one module per API area."""

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    geo_service: str
    identity_service: str
    timestamp: datetime
