"""
Tests for the relay liveness sweep and heartbeat task.

A connection must acknowledge every probe before the next sweep; one that
misses a probe is terminated and forgotten on the following sweep.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from signal_relay.exceptions import RelayError
from signal_relay.relay.connection import Liveness
from signal_relay.relay.registry import ConnectionRegistry
from signal_relay.relay.relay import SignalingRelay
from tests.mocks.channel_mocks import answer_pings, never_returns, sent_envelopes


class TestSweep:
    """Tests for SignalingRelay.sweep."""

    @pytest.mark.asyncio
    async def test_first_sweep_probes_every_connection(
        self, relay, channel_factory
    ):
        channels = [channel_factory() for _ in range(3)]
        connections = [relay.connect(channel) for channel in channels]

        reaped = await relay.sweep()

        assert reaped == 0
        for channel, connection in zip(channels, connections):
            channel.ping.assert_awaited_once()
            assert connection.liveness is Liveness.AWAITING_PONG

    @pytest.mark.asyncio
    async def test_unresponsive_connection_reaped_on_second_sweep(
        self, relay, channel_factory
    ):
        dead_channel = channel_factory()
        dead = relay.connect(dead_channel)
        await relay.handle_message(dead, '{"type": "register", "userId": "u1"}')

        await relay.sweep()
        dead_channel.abort.assert_not_called()

        reaped = await relay.sweep()

        assert reaped == 1
        dead_channel.abort.assert_called_once()
        assert relay.registry.lookup("u1") is None
        assert not relay.registry.tracks(dead)

    @pytest.mark.asyncio
    async def test_signal_to_reaped_identity_fails(
        self, relay, channel_factory
    ):
        dead_channel, live_channel = channel_factory(), channel_factory()
        dead = relay.connect(dead_channel)
        live = relay.connect(live_channel)
        await relay.handle_message(dead, '{"type": "register", "userId": "u1"}')
        await relay.handle_message(live, '{"type": "register", "userId": "u2"}')

        await relay.sweep()
        await answer_pings(live_channel)
        await relay.sweep()

        await relay.handle_message(
            live, '{"type": "offer", "from": "u2", "to": "u1"}'
        )

        assert sent_envelopes(live_channel) == [
            {
                "type": "error",
                "message": "Recipient not available",
                "from": "server",
                "to": "u2",
            }
        ]
        live_channel.abort.assert_not_called()

    @pytest.mark.asyncio
    async def test_responsive_connection_never_reaped(
        self, relay, channel_factory
    ):
        channel = channel_factory()
        connection = relay.connect(channel)

        for _ in range(5):
            assert await relay.sweep() == 0
            await answer_pings(channel)

        channel.abort.assert_not_called()
        assert relay.registry.tracks(connection)
        assert channel.ping.await_count == 5

    @pytest.mark.asyncio
    async def test_late_pong_after_reap_has_no_effect(
        self, relay, channel_factory
    ):
        channel = channel_factory()
        relay.connect(channel)

        await relay.sweep()
        pending = list(channel.pending_pongs)
        await relay.sweep()

        assert all(ack.done() for ack in pending)
        assert relay.registry.connections() == []

    @pytest.mark.asyncio
    async def test_closed_connection_is_not_probed(
        self, relay, channel_factory
    ):
        channel = channel_factory(is_open=False)
        relay.connect(channel)

        await relay.sweep()

        channel.ping.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_probe_failure_does_not_stop_sweep(
        self, relay, channel_factory
    ):
        broken, healthy = channel_factory(), channel_factory()
        broken.ping.side_effect = RuntimeError("boom")
        relay.connect(broken)
        relay.connect(healthy)

        await relay.sweep()

        healthy.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stalled_ping_does_not_block_sweep(
        self, registry, channel_factory
    ):
        """A ping stuck in the transport must not stall the other peers."""
        relay = SignalingRelay(registry, heartbeat_interval=0.05)
        stuck_channel, dead_channel, live_channel = (
            channel_factory() for _ in range(3)
        )
        stuck_channel.ping.side_effect = never_returns
        stuck = relay.connect(stuck_channel)
        dead = relay.connect(dead_channel)
        relay.connect(live_channel)
        dead.mark_probe_sent()

        reaped = await asyncio.wait_for(relay.sweep(), timeout=2)

        assert reaped == 1
        dead_channel.abort.assert_called_once()
        assert not relay.registry.tracks(dead)
        live_channel.ping.assert_awaited_once()
        assert stuck.liveness is Liveness.AWAITING_PONG

    @pytest.mark.asyncio
    async def test_timed_out_ping_reaped_on_next_sweep(
        self, registry, channel_factory
    ):
        relay = SignalingRelay(registry, heartbeat_interval=0.05)
        stuck_channel = channel_factory()
        stuck_channel.ping.side_effect = never_returns
        stuck = relay.connect(stuck_channel)

        await asyncio.wait_for(relay.sweep(), timeout=2)
        reaped = await asyncio.wait_for(relay.sweep(), timeout=2)

        assert reaped == 1
        stuck_channel.abort.assert_called_once()
        assert not relay.registry.tracks(stuck)

    @pytest.mark.asyncio
    async def test_sweep_of_empty_registry(self, relay):
        assert await relay.sweep() == 0


class TestHeartbeatTask:
    """Tests for the periodic heartbeat task lifecycle."""

    @pytest.mark.asyncio
    async def test_heartbeat_sweeps_periodically(self):
        relay = SignalingRelay(ConnectionRegistry(), heartbeat_interval=0.01)

        with patch.object(relay, "sweep", AsyncMock(return_value=0)) as sweep:
            relay.start()
            await asyncio.sleep(0.1)
            await relay.stop()

        assert sweep.await_count >= 2

    @pytest.mark.asyncio
    async def test_stop_cancels_heartbeat(self):
        relay = SignalingRelay(ConnectionRegistry(), heartbeat_interval=0.01)

        relay.start()
        assert relay.is_running

        await relay.stop()

        assert not relay.is_running

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        relay = SignalingRelay(ConnectionRegistry())

        await relay.stop()

        assert not relay.is_running

    @pytest.mark.asyncio
    async def test_start_twice_raises(self):
        relay = SignalingRelay(ConnectionRegistry(), heartbeat_interval=10)
        relay.start()

        try:
            with pytest.raises(RelayError):
                relay.start()
        finally:
            await relay.stop()

    @pytest.mark.asyncio
    async def test_sweep_error_keeps_heartbeat_running(self):
        relay = SignalingRelay(ConnectionRegistry(), heartbeat_interval=0.01)

        with patch.object(
            relay, "sweep", AsyncMock(side_effect=RuntimeError("boom"))
        ) as sweep:
            relay.start()
            await asyncio.sleep(0.1)
            assert relay.is_running
            await relay.stop()

        assert sweep.await_count >= 2

    @pytest.mark.asyncio
    async def test_heartbeat_reaps_dead_peer(self, channel_factory):
        relay = SignalingRelay(ConnectionRegistry(), heartbeat_interval=0.01)
        channel = channel_factory()
        relay.connect(channel)

        relay.start()
        await asyncio.sleep(0.1)
        await relay.stop()

        channel.abort.assert_called_once()
        assert relay.registry.connections() == []
