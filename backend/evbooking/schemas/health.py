"""Health check response models."""

from ._strict_base import StrictModel


class HealthResponse(StrictModel):
    status: str
    service: str
    environment: str
    database: bool
    timestamp: str


class HealthLiteResponse(StrictModel):
    status: str
