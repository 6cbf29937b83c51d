"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics endpoint",
    tags=["metrics"],
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics for monitoring.

    Example:
        ```
        # HELP relay_messages_forwarded_total Total signal envelopes forwarded to a recipient
        # TYPE relay_messages_forwarded_total counter
        relay_messages_forwarded_total 42.0
        ```
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
