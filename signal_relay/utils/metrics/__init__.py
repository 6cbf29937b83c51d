"""
Prometheus metrics definitions and utilities.

All metrics are re-exported here:

    from signal_relay.utils.metrics import relay_connections_active

Relay code should use the MetricsCollector facade instead:

    from signal_relay.utils.metrics import MetricsCollector
    MetricsCollector.record_message_forwarded()
"""

from signal_relay.utils.metrics.collector import MetricsCollector
from signal_relay.utils.metrics.relay import (
    app_info,
    relay_connections_active,
    relay_connections_total,
    relay_heartbeat_sweeps_total,
    relay_messages_forwarded_total,
    relay_messages_received_total,
    relay_registered_peers,
    relay_routing_failures_total,
    relay_sweep_duration_seconds,
)

__all__ = [
    "MetricsCollector",
    "app_info",
    "relay_connections_active",
    "relay_connections_total",
    "relay_heartbeat_sweeps_total",
    "relay_messages_forwarded_total",
    "relay_messages_received_total",
    "relay_registered_peers",
    "relay_routing_failures_total",
    "relay_sweep_duration_seconds",
]
