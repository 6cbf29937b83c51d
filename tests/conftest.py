"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for the relay, its registry and mock
client channels.
"""

import os

import pytest

# Keep test runs from writing error logs into the working tree
os.environ.setdefault("LOG_FILE_PATH", os.devnull)


@pytest.fixture
def registry():
    """
    Provides an empty connection registry.

    Returns:
        ConnectionRegistry: Fresh registry instance
    """
    from signal_relay.relay.registry import ConnectionRegistry

    return ConnectionRegistry()


@pytest.fixture
def relay(registry):
    """
    Provides a relay bound to the ``registry`` fixture.

    The heartbeat task is not started; tests drive sweeps explicitly.

    Returns:
        SignalingRelay: Relay instance
    """
    from signal_relay.relay.relay import SignalingRelay

    return SignalingRelay(registry, heartbeat_interval=30.0)


@pytest.fixture
def channel_factory():
    """
    Provides the mock channel factory.

    Returns:
        Callable: ``create_mock_channel``
    """
    from tests.mocks.channel_mocks import create_mock_channel

    return create_mock_channel
