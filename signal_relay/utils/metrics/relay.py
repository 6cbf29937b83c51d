"""
Prometheus metrics for signaling relay monitoring.

This module defines metrics for tracking relay connections, registered
peers, routed envelopes and heartbeat sweeps.
"""

from signal_relay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
    _get_or_create_histogram,
)

# Connection Metrics
relay_connections_active = _get_or_create_gauge(
    "relay_connections_active", "Number of open relay connections"
)

relay_connections_total = _get_or_create_counter(
    "relay_connections_total",
    "Total relay connection lifecycle events",
    ["status"],  # opened, closed, reaped
)

relay_registered_peers = _get_or_create_gauge(
    "relay_registered_peers", "Number of identities in the relay registry"
)

# Envelope Metrics
relay_messages_received_total = _get_or_create_counter(
    "relay_messages_received_total",
    "Total inbound relay frames",
    ["kind"],  # register, signal, malformed
)

relay_messages_forwarded_total = _get_or_create_counter(
    "relay_messages_forwarded_total",
    "Total signal envelopes forwarded to a recipient",
)

relay_routing_failures_total = _get_or_create_counter(
    "relay_routing_failures_total",
    "Total signal envelopes whose recipient was not available",
)

# Heartbeat Metrics
relay_heartbeat_sweeps_total = _get_or_create_counter(
    "relay_heartbeat_sweeps_total", "Total liveness sweeps executed"
)

relay_sweep_duration_seconds = _get_or_create_histogram(
    "relay_sweep_duration_seconds",
    "Liveness sweep duration in seconds",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


# Application Metrics
app_info = _get_or_create_gauge(
    "app_info",
    "Application information",
    ["version", "python_version", "environment"],
)
