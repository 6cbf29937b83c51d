"""
Facade for centralized metrics emission.

Provides high-level methods for recording metrics without exposing
Prometheus implementation details to the relay code.
"""


class MetricsCollector:
    """
    Centralized facade for all Prometheus metrics.

    All methods are static for easy use without instantiation.
    """

    # ========== Connection Metrics ==========

    @staticmethod
    def record_connection_opened() -> None:
        """Record a new relay connection."""
        from signal_relay.utils.metrics import (
            relay_connections_active,
            relay_connections_total,
        )

        relay_connections_total.labels(status="opened").inc()
        relay_connections_active.inc()

    @staticmethod
    def record_connection_closed(reaped: bool = False) -> None:
        """
        Record a relay connection going away.

        Args:
            reaped: True when the liveness sweep terminated the connection.
        """
        from signal_relay.utils.metrics import (
            relay_connections_active,
            relay_connections_total,
        )

        relay_connections_total.labels(
            status="reaped" if reaped else "closed"
        ).inc()
        relay_connections_active.dec()

    @staticmethod
    def set_registered_peers(count: int) -> None:
        """Publish the current registry size."""
        from signal_relay.utils.metrics import relay_registered_peers

        relay_registered_peers.set(count)

    # ========== Envelope Metrics ==========

    @staticmethod
    def record_message_received(kind: str) -> None:
        """
        Record an inbound frame.

        Args:
            kind: One of 'register', 'signal', 'malformed'
        """
        from signal_relay.utils.metrics import relay_messages_received_total

        relay_messages_received_total.labels(kind=kind).inc()

    @staticmethod
    def record_message_forwarded() -> None:
        """Record a signal envelope delivered to its recipient."""
        from signal_relay.utils.metrics import relay_messages_forwarded_total

        relay_messages_forwarded_total.inc()

    @staticmethod
    def record_routing_failure() -> None:
        """Record a signal envelope whose recipient was not available."""
        from signal_relay.utils.metrics import relay_routing_failures_total

        relay_routing_failures_total.inc()

    # ========== Heartbeat Metrics ==========

    @staticmethod
    def record_sweep(duration: float) -> None:
        """
        Record a completed liveness sweep.

        Args:
            duration: Sweep duration in seconds
        """
        from signal_relay.utils.metrics import (
            relay_heartbeat_sweeps_total,
            relay_sweep_duration_seconds,
        )

        relay_heartbeat_sweeps_total.inc()
        relay_sweep_duration_seconds.observe(duration)
