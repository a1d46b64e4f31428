"""
Prometheus metrics endpoint for monitoring infrastructure.

Public endpoint (no caller identity required) exposing the service,
admission, QR validation and station-lock metrics.
"""

from fastapi import APIRouter, Response

from ..monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["monitoring"])


@router.get("", include_in_schema=False)
def metrics() -> Response:
    """Prometheus text exposition."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
