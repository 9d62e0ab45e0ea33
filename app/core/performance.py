"""
HTTP request metrics.
"""

import time
from typing import Callable

import structlog
from fastapi import Request

from app.config import settings
from app.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

logger = structlog.get_logger(__name__)


def _endpoint_label(request: Request) -> str:
    # Route template keeps label cardinality bounded (/tenants/{tenant_id})
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


async def track_http_metrics(request: Request, call_next: Callable):
    """Count, time and flag slow requests."""
    method = request.method
    http_requests_in_progress.labels(method=method).inc()
    started = time.perf_counter()

    try:
        response = await call_next(request)
    finally:
        http_requests_in_progress.labels(method=method).dec()

    elapsed = time.perf_counter() - started
    endpoint = _endpoint_label(request)
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(elapsed)
    http_requests_total.labels(
        method=method, endpoint=endpoint, status_code=response.status_code
    ).inc()

    if elapsed * 1000 > settings.slow_request_threshold_ms:
        logger.warning(
            "slow_request",
            method=method,
            endpoint=endpoint,
            duration_ms=round(elapsed * 1000, 2),
        )
    return response
