from typing import Iterator

from signal_relay.logging import logger
from signal_relay.relay.connection import Connection
from signal_relay.utils.metrics import MetricsCollector


class ConnectionRegistry:
    """
    Process-local bookkeeping of relay connections.

    Holds two views: every open connection (walked by the liveness sweep)
    and the identity -> connection routing table. Only the event loop thread
    mutates it, so no locking is done.
    """

    def __init__(self):
        self._connections: set[Connection] = set()
        self._routes: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, identity: object) -> bool:
        return identity in self._routes

    # Open connections

    def add(self, connection: Connection) -> None:
        self._connections.add(connection)

    def discard(self, connection: Connection) -> None:
        self._connections.discard(connection)

    def tracks(self, connection: Connection) -> bool:
        return connection in self._connections

    def connections(self) -> list[Connection]:
        """Snapshot of tracked connections, safe to iterate while mutating."""
        return list(self._connections)

    # Routing table

    def register(
        self, identity: str, connection: Connection
    ) -> Connection | None:
        """
        Route ``identity`` to ``connection``.

        An earlier connection registered under the same identity is replaced
        but left open. A connection that re-registers under a new identity
        gives up its old route.

        Returns:
            The superseded connection, if any.
        """
        if connection.identity is not None and connection.identity != identity:
            self.unregister(connection)

        superseded = self._routes.get(identity)
        connection.identity = identity
        self._routes[identity] = connection
        MetricsCollector.set_registered_peers(len(self._routes))

        if superseded is not None and superseded is not connection:
            # TODO: confirm with product whether the superseded connection
            # should be closed instead of left open without a route.
            logger.info(
                f'Identity "{identity}" moved from connection '
                f"{superseded.connection_id} to {connection.connection_id}"
            )
            return superseded

        logger.info(
            f'Identity "{identity}" registered on connection '
            f"{connection.connection_id}"
        )
        return None

    def lookup(self, identity: str) -> Connection | None:
        return self._routes.get(identity)

    def unregister(self, connection: Connection) -> bool:
        """
        Drop the route of ``connection``.

        The route is only removed while it still points at this connection;
        a superseded connection going away leaves its replacement in place.

        Returns:
            True if a route was removed.
        """
        identity = connection.identity
        if identity is None or self._routes.get(identity) is not connection:
            return False

        del self._routes[identity]
        MetricsCollector.set_registered_peers(len(self._routes))
        logger.info(
            f'Identity "{identity}" unregistered from connection '
            f"{connection.connection_id}"
        )
        return True

    def identities(self) -> list[str]:
        return sorted(self._routes)

    def clear(self) -> None:
        self._connections.clear()
        self._routes.clear()
        MetricsCollector.set_registered_peers(0)

    def __iter__(self) -> Iterator[str]:
        return iter(self.identities())
