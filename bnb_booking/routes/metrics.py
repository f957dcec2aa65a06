"""
Prometheus metrics endpoint.

Example:
    GET /metrics

    Response:
        # HELP bnb_channel_syncs_total Total number of channel sync runs
        # TYPE bnb_channel_syncs_total counter
        bnb_channel_syncs_total{channel="smoobu",status="success"} 42.0
        ...
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def metrics() -> Any:
    """Metrics in Prometheus text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
