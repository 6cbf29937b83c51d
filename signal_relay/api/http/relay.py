"""Operator view of the signaling relay registry."""

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel

router = APIRouter(prefix="/relay", tags=["relay"])


class PeersResponse(BaseModel):
    """Identities currently reachable through the relay."""

    peers: list[str]
    count: int


@router.get(
    "/peers",
    response_model=PeersResponse,
    summary="List registered signaling identities",
)
async def list_peers(request: Request) -> PeersResponse:
    relay_server = getattr(request.app.state, "relay_server", None)

    if relay_server is None or not relay_server.is_running:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Relay server is not running",
        )

    peers = list(relay_server.relay.registry)
    return PeersResponse(peers=peers, count=len(peers))
