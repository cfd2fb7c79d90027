"""Prometheus scrape endpoint (text exposition format, not JSON).

Besides the HTTP metrics this exposes the engine counters:
access_decisions_total, enrollments_created_total and
enrollment_failures_total.  Restrict it to the scraper's network in
production.
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
