import time
from asyncio import CancelledError, Task, create_task, gather, sleep

from signal_relay.exceptions import EnvelopeError, RelayError
from signal_relay.logging import logger, set_log_context
from signal_relay.relay.connection import Channel, Connection
from signal_relay.relay.envelope import (
    ErrorEnvelope,
    RegisterEnvelope,
    SignalEnvelope,
    decode_envelope,
    decode_frame,
)
from signal_relay.relay.registry import ConnectionRegistry
from signal_relay.utils.metrics import MetricsCollector


class SignalingRelay:
    """
    Routes signaling envelopes between registered clients.

    The relay is transport independent: a transport adapter calls
    ``connect`` when a client arrives, ``handle_message`` for every frame
    and ``disconnect`` when the client goes away. A periodic heartbeat task
    probes every open connection and reaps the ones that did not answer the
    previous probe.

    All methods must be called from the event loop that runs the heartbeat.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        heartbeat_interval: float = 30.0,
    ):
        """
        Args:
            registry: Registry owned by this relay for its whole lifetime.
            heartbeat_interval: Seconds between two liveness sweeps. A peer
                that stops answering is reaped after one to two intervals.
        """
        self.registry = registry
        self.heartbeat_interval = heartbeat_interval
        self._heartbeat_task: Task | None = None

    @property
    def is_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    # Connection lifecycle

    def connect(self, channel: Channel) -> Connection:
        """Track a newly accepted channel as an alive, unregistered connection."""
        connection = Connection(channel)
        self.registry.add(connection)
        set_log_context(connection_id=connection.connection_id)

        MetricsCollector.record_connection_opened()
        logger.debug(
            f"Client connected to relay from {channel.remote_address} "
            f"(connection_id: {connection.connection_id})"
        )
        return connection

    def disconnect(self, connection: Connection, reaped: bool = False) -> None:
        """
        Forget a connection and its route. Calling it twice is harmless.

        Args:
            connection: The connection that closed or was terminated.
            reaped: True when the liveness sweep terminated it.
        """
        if not self.registry.tracks(connection):
            return

        self.registry.discard(connection)
        self.registry.unregister(connection)

        MetricsCollector.record_connection_closed(reaped=reaped)
        logger.debug(
            f"Connection {connection.connection_id} "
            f"{'reaped' if reaped else 'disconnected'}"
            + (f' (identity "{connection.identity}")' if connection.identity else "")
        )

    # Message handling

    async def handle_message(
        self, connection: Connection, raw: str | bytes
    ) -> None:
        """
        Process one inbound frame from ``connection``.

        Malformed frames are dropped without a reply. Failures never
        propagate: a bad frame or a failing send must not affect the sender's
        connection or any other connection.
        """
        try:
            text = decode_frame(raw)
            envelope = decode_envelope(text)
        except EnvelopeError as ex:
            MetricsCollector.record_message_received("malformed")
            logger.debug(
                f"Dropped frame from connection {connection.connection_id}: {ex}"
            )
            return

        try:
            if isinstance(envelope, RegisterEnvelope):
                MetricsCollector.record_message_received("register")
                self.register(connection, envelope.user_id)
            else:
                MetricsCollector.record_message_received("signal")
                await self.route(connection, envelope, text)
        except Exception as ex:
            logger.error(
                f"Error handling frame from connection "
                f"{connection.connection_id}: {ex}"
            )

    def register(self, connection: Connection, identity: str) -> None:
        """Make ``connection`` reachable as ``identity``. No reply is sent."""
        self.registry.register(identity, connection)
        set_log_context(identity=identity)

    async def route(
        self, sender: Connection, envelope: SignalEnvelope, text: str
    ) -> bool:
        """
        Forward the original ``text`` of a signal to its recipient.

        When the recipient has no open connection the sender receives a
        "Recipient not available" error envelope instead.

        Returns:
            True if the frame was forwarded.
        """
        recipient = self.registry.lookup(envelope.recipient)

        if recipient is not None and await recipient.send(
            text, timeout=self.heartbeat_interval
        ):
            MetricsCollector.record_message_forwarded()
            logger.debug(
                f'Forwarded "{envelope.type}" from "{envelope.sender}" '
                f'to "{envelope.recipient}"'
            )
            return True

        MetricsCollector.record_routing_failure()
        logger.debug(
            f'Recipient "{envelope.recipient}" not available for '
            f'"{envelope.type}" from "{envelope.sender}"'
        )
        await sender.send(
            ErrorEnvelope.recipient_not_available(envelope.sender).to_text(),
            timeout=self.heartbeat_interval,
        )
        return False

    # Liveness

    async def sweep(self) -> int:
        """
        Run one heartbeat tick over every open connection.

        A connection that has not acknowledged the previous probe is
        terminated and forgotten; every other connection is probed again.
        Probes run concurrently and each is bounded by the heartbeat
        interval, so a peer with a stalled transport cannot hold up the
        others.

        Returns:
            Number of reaped connections.
        """
        start_time = time.time()
        reaped = 0
        to_probe: list[Connection] = []

        for connection in self.registry.connections():
            if not connection.is_alive:
                logger.info(
                    f"Connection {connection.connection_id} missed a "
                    "liveness probe, terminating"
                )
                connection.terminate()
                self.disconnect(connection, reaped=True)
                reaped += 1
            elif connection.is_open:
                to_probe.append(connection)

        results = await gather(
            *(
                connection.probe(timeout=self.heartbeat_interval)
                for connection in to_probe
            ),
            return_exceptions=True,
        )
        for connection, result in zip(to_probe, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Probing connection {connection.connection_id} failed: "
                    f"{result}"
                )

        MetricsCollector.record_sweep(time.time() - start_time)
        return reaped

    async def _heartbeat(self) -> None:
        """Sweep every ``heartbeat_interval`` seconds until cancelled."""
        while True:
            try:
                await sleep(self.heartbeat_interval)
                reaped = await self.sweep()
                if reaped:
                    logger.info(f"Liveness sweep reaped {reaped} connection(s)")

            except CancelledError:
                logger.info("Relay heartbeat task cancelled!")
                break

            except Exception as ex:
                logger.error(f"Relay heartbeat error occurred with: {ex}")

    def start(self) -> None:
        """
        Start the heartbeat task on the running event loop.

        Raises:
            RelayError: If the relay is already running.
        """
        if self.is_running:
            raise RelayError("Signaling relay is already running")

        self._heartbeat_task = create_task(self._heartbeat())
        logger.info(
            f"Signaling relay started (heartbeat every "
            f"{self.heartbeat_interval}s)"
        )

    async def stop(self) -> None:
        """Cancel the heartbeat task and wait for it to finish."""
        task, self._heartbeat_task = self._heartbeat_task, None

        if task is not None:
            task.cancel()
            await gather(task, return_exceptions=True)

        logger.info("Signaling relay stopped")
