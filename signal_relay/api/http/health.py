"""Health check endpoint for monitoring service status."""

from typing import Literal

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

from signal_relay.logging import logger

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: Literal["healthy", "unhealthy"]
    relay: Literal["running", "stopped"]
    registered_peers: int
    open_connections: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """
    Check health status of the service.

    The service is healthy while the relay WebSocket listener is running.

    Returns:
        HealthResponse: Relay status with registry counts.
        Returns 503 Service Unavailable if the relay is not running.
    """
    relay_server = getattr(request.app.state, "relay_server", None)

    if relay_server is None or not relay_server.is_running:
        logger.error("Health check failed: relay server is not running")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="unhealthy",
            relay="stopped",
            registered_peers=0,
            open_connections=0,
        )

    registry = relay_server.relay.registry
    return HealthResponse(
        status="healthy",
        relay="running",
        registered_peers=len(registry),
        open_connections=len(registry.connections()),
    )
