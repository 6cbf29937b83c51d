"""Signaling relay: envelope routing between registered peers with liveness probing."""

from signal_relay.relay.connection import Channel, Connection, Liveness
from signal_relay.relay.registry import ConnectionRegistry
from signal_relay.relay.relay import SignalingRelay
from signal_relay.relay.server import RelayServer, WebsocketsChannel

__all__ = [
    "Channel",
    "Connection",
    "ConnectionRegistry",
    "Liveness",
    "RelayServer",
    "SignalingRelay",
    "WebsocketsChannel",
]
