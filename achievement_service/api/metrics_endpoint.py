"""Prometheus scrape endpoint.

Renders the default registry: the HTTP metrics from MetricsMiddleware
and the evaluation, award and cache counters from core/metrics.py.
Keep it on an internal network in production; label values expose
route paths and traffic shape.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
