"""
WebSocket transport for the signaling relay.

The relay needs transport-level ping/pong control frames for its liveness
probes, which ASGI does not expose to applications, so the relay listens
with the ``websockets`` asyncio server next to the HTTP application.
"""

from http import HTTPStatus
from typing import Any, Awaitable
from urllib.parse import urlsplit

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response
from websockets.protocol import State

from signal_relay.constants import WS_CLOSE_TIMEOUT_SECONDS
from signal_relay.exceptions import RelayNotRunningError
from signal_relay.logging import clear_log_context, logger
from signal_relay.relay.registry import ConnectionRegistry
from signal_relay.relay.relay import SignalingRelay
from signal_relay.settings import Settings


class WebsocketsChannel:
    """Adapts a ``websockets`` server connection to the relay ``Channel``."""

    def __init__(self, websocket: ServerConnection):
        self._websocket = websocket

    @property
    def is_open(self) -> bool:
        return self._websocket.state is State.OPEN

    @property
    def remote_address(self) -> Any:
        return self._websocket.remote_address

    async def send(self, text: str) -> None:
        try:
            await self._websocket.send(text)
        except ConnectionClosed as e:
            raise ConnectionError(f"WebSocket connection closed: {e}") from e

    async def ping(self) -> Awaitable[float]:
        try:
            return await self._websocket.ping()
        except ConnectionClosed as e:
            raise ConnectionError(f"WebSocket connection closed: {e}") from e

    def abort(self) -> None:
        self._websocket.transport.abort()


class RelayServer:
    """
    WebSocket listener feeding a ``SignalingRelay``.

    Owns the lifecycle of the relay: ``start`` binds the listener and starts
    the heartbeat, ``stop`` cancels the heartbeat before closing the
    listener and every open connection.
    """

    def __init__(
        self,
        relay: SignalingRelay,
        host: str = "0.0.0.0",  # noqa: S104
        port: int = 8765,
        path: str = "/ws",
        max_size: int = 2**20,
    ):
        """
        Args:
            relay: Relay receiving connections and frames.
            host: Bind host address.
            port: Bind port, 0 picks a free port.
            path: Only upgrade requests for this path are accepted.
            max_size: Maximum size of an inbound frame in bytes.
        """
        self.relay = relay
        self.host = host
        self.path = path
        self.max_size = max_size
        self._port = port
        self._server: Server | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayServer":
        """Build a server and a relay with a fresh registry from settings."""
        relay = SignalingRelay(
            ConnectionRegistry(),
            heartbeat_interval=settings.RELAY_HEARTBEAT_INTERVAL_SECONDS,
        )
        return cls(
            relay,
            host=settings.RELAY_HOST,
            port=settings.RELAY_PORT,
            path=settings.RELAY_PATH,
            max_size=settings.RELAY_MAX_MESSAGE_SIZE,
        )

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        """
        Port the listener is bound to.

        Raises:
            RelayNotRunningError: If the server has not been started.
        """
        if self._server is None:
            raise RelayNotRunningError("Relay server is not running")
        return self._server.sockets[0].getsockname()[1]

    def _process_request(
        self, websocket: ServerConnection, request: Request
    ) -> Response | None:
        """Reject upgrade requests for any path other than the relay path."""
        if urlsplit(request.path).path != self.path:
            logger.debug(f"Rejected relay upgrade for path {request.path}")
            return websocket.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        """
        Serve one client for the lifetime of its connection.

        Frames of one connection are handled one at a time, which keeps
        forwarding from one sender in arrival order.
        """
        connection = self.relay.connect(WebsocketsChannel(websocket))

        try:
            async for message in websocket:
                await self.relay.handle_message(connection, message)
        except ConnectionClosed as e:
            logger.debug(
                f"Connection {connection.connection_id} closed abnormally: {e}"
            )
        finally:
            self.relay.disconnect(connection)
            clear_log_context()

    async def start(self) -> None:
        """
        Bind the listener and start the relay heartbeat.

        Raises:
            RuntimeError: If the server is already running
            OSError: If port binding fails
        """
        if self._server is not None:
            raise RuntimeError("Relay server is already running")

        self._server = await serve(
            self._handle_connection,
            self.host,
            self._port,
            process_request=self._process_request,
            # Liveness is probed by the relay heartbeat
            ping_interval=None,
            max_size=self.max_size,
            close_timeout=WS_CLOSE_TIMEOUT_SECONDS,
        )
        self.relay.start()

        logger.info(
            f"Relay server listening on ws://{self.host}:{self.port}{self.path}"
        )

    async def stop(self) -> None:
        """Stop the heartbeat, then close the listener and all connections."""
        if self._server is None:
            return

        await self.relay.stop()

        server, self._server = self._server, None
        server.close(close_connections=True)
        await server.wait_closed()

        self.relay.registry.clear()
        logger.info("Relay server stopped")
