"""Relay-side view of one client connection and its liveness state."""

import asyncio
import uuid
from enum import Enum
from typing import Any, Awaitable, Protocol

from signal_relay.constants import CONNECTION_ID_LENGTH
from signal_relay.logging import logger


class Channel(Protocol):
    """
    Transport operations the relay needs from a client connection.

    Implementations translate transport-specific "connection closed"
    failures into ``ConnectionError``.
    """

    @property
    def is_open(self) -> bool: ...

    @property
    def remote_address(self) -> Any: ...

    async def send(self, text: str) -> None: ...

    async def ping(self) -> Awaitable[Any]: ...

    def abort(self) -> None: ...


class Liveness(str, Enum):
    """
    Heartbeat state of a connection.

    ALIVE -> AWAITING_PONG when a probe is sent; any acknowledgment moves the
    connection back to ALIVE. A connection still AWAITING_PONG at the next
    sweep is considered dead.
    """

    ALIVE = "alive"
    AWAITING_PONG = "awaiting_pong"


class Connection:
    """One live channel to a client, optionally bound to an identity."""

    def __init__(self, channel: Channel, connection_id: str | None = None):
        self.channel = channel
        self.connection_id = (
            connection_id or uuid.uuid4().hex[:CONNECTION_ID_LENGTH]
        )
        self.identity: str | None = None
        self.liveness = Liveness.ALIVE

    def __repr__(self) -> str:
        return (
            f"Connection(id={self.connection_id!r}, "
            f"identity={self.identity!r}, liveness={self.liveness.value})"
        )

    @property
    def is_open(self) -> bool:
        return self.channel.is_open

    @property
    def is_alive(self) -> bool:
        return self.liveness is Liveness.ALIVE

    @property
    def is_registered(self) -> bool:
        return self.identity is not None

    def mark_probe_sent(self) -> None:
        self.liveness = Liveness.AWAITING_PONG

    def mark_alive(self) -> None:
        self.liveness = Liveness.ALIVE

    async def probe(self, timeout: float | None = None) -> None:
        """
        Send a liveness probe.

        The connection is marked as awaiting a pong before the ping goes
        out; the acknowledgment flips it back to alive from a done callback,
        outside of the sweep that sent the probe. A probe that cannot be
        sent, or is not handed to the transport within ``timeout`` seconds
        (a peer that stopped reading backs up the write buffer), leaves the
        connection awaiting, so the next sweep reaps it.
        """
        self.mark_probe_sent()

        try:
            ack = await asyncio.wait_for(self.channel.ping(), timeout)
        except ConnectionError as ex:
            logger.debug(
                f"Could not probe connection {self.connection_id}: {ex}"
            )
            return
        except asyncio.TimeoutError:
            logger.debug(
                f"Probe to connection {self.connection_id} timed out "
                f"after {timeout}s"
            )
            return

        asyncio.ensure_future(ack).add_done_callback(self._on_probe_ack)

    def _on_probe_ack(self, ack: asyncio.Future) -> None:
        # A closed connection cancels or fails its pending acknowledgments
        if ack.cancelled() or ack.exception() is not None:
            return
        self.mark_alive()

    async def send(self, text: str, timeout: float | None = None) -> bool:
        """
        Send a text frame if the channel is open.

        Args:
            text: Frame payload.
            timeout: Seconds to wait for the transport to accept the frame;
                None waits indefinitely.

        Returns:
            True if the frame was handed to the transport, False if the
            channel was closed before or during the send, or did not accept
            the frame in time.
        """
        if not self.is_open:
            return False

        try:
            await asyncio.wait_for(self.channel.send(text), timeout)
        except ConnectionError as ex:
            logger.debug(
                f"Send to connection {self.connection_id} failed: {ex}"
            )
            return False
        except asyncio.TimeoutError:
            logger.debug(
                f"Send to connection {self.connection_id} timed out "
                f"after {timeout}s"
            )
            return False

        return True

    def terminate(self) -> None:
        """Drop the transport without a closing handshake."""
        self.channel.abort()
