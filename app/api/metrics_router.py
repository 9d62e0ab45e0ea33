"""
Metrics endpoint for Prometheus scraping.
"""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """HTTP traffic, login, OTP, invitation and background job counters."""
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
