"""
Tests for the relay connection and its liveness state machine.

Covers the ALIVE <-> AWAITING_PONG transitions driven by probes and their
acknowledgments, and the failure-tolerant send path.
"""

import asyncio

import pytest

from signal_relay.relay.connection import Connection, Liveness
from tests.mocks.channel_mocks import (
    answer_pings,
    create_mock_channel,
    never_returns,
)


class TestLiveness:
    """Tests for liveness transitions."""

    def test_new_connection_is_alive(self):
        connection = Connection(create_mock_channel())

        assert connection.liveness is Liveness.ALIVE
        assert connection.is_alive
        assert not connection.is_registered

    def test_connection_id_is_short_hex(self):
        connection = Connection(create_mock_channel())

        assert len(connection.connection_id) == 8
        int(connection.connection_id, 16)

    @pytest.mark.asyncio
    async def test_probe_marks_awaiting_before_ping(self):
        """The state flips before the ping is sent, not after."""
        channel = create_mock_channel()
        connection = Connection(channel)
        states_at_ping = []

        original_ping = channel.ping.side_effect

        def _ping():
            states_at_ping.append(connection.liveness)
            return original_ping()

        channel.ping.side_effect = _ping

        await connection.probe()

        assert states_at_ping == [Liveness.AWAITING_PONG]
        assert connection.liveness is Liveness.AWAITING_PONG

    @pytest.mark.asyncio
    async def test_pong_marks_alive(self):
        channel = create_mock_channel()
        connection = Connection(channel)

        await connection.probe()
        assert not connection.is_alive

        await answer_pings(channel)

        assert connection.is_alive

    @pytest.mark.asyncio
    async def test_cancelled_ack_leaves_connection_awaiting(self):
        channel = create_mock_channel()
        connection = Connection(channel)

        await connection.probe()
        channel.pending_pongs[0].cancel()
        await asyncio.sleep(0)

        assert connection.liveness is Liveness.AWAITING_PONG

    @pytest.mark.asyncio
    async def test_failed_ack_leaves_connection_awaiting(self):
        channel = create_mock_channel()
        connection = Connection(channel)

        await connection.probe()
        channel.pending_pongs[0].set_exception(ConnectionError("closed"))
        await asyncio.sleep(0)

        assert connection.liveness is Liveness.AWAITING_PONG

    @pytest.mark.asyncio
    async def test_probe_on_closed_channel_is_swallowed(self):
        channel = create_mock_channel()
        channel.ping.side_effect = ConnectionError("closed")
        connection = Connection(channel)

        await connection.probe()

        assert connection.liveness is Liveness.AWAITING_PONG

    @pytest.mark.asyncio
    async def test_stalled_ping_times_out_awaiting(self):
        channel = create_mock_channel()
        channel.ping.side_effect = never_returns
        connection = Connection(channel)

        await asyncio.wait_for(connection.probe(timeout=0.05), timeout=2)

        assert connection.liveness is Liveness.AWAITING_PONG


class TestSend:
    """Tests for Connection.send."""

    @pytest.mark.asyncio
    async def test_send_when_open(self):
        channel = create_mock_channel()
        connection = Connection(channel)

        assert await connection.send("hello") is True
        channel.send.assert_awaited_once_with("hello")

    @pytest.mark.asyncio
    async def test_send_when_closed_is_skipped(self):
        channel = create_mock_channel(is_open=False)
        connection = Connection(channel)

        assert await connection.send("hello") is False
        channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self):
        channel = create_mock_channel()
        channel.send.side_effect = ConnectionError("closed")
        connection = Connection(channel)

        assert await connection.send("hello") is False

    @pytest.mark.asyncio
    async def test_stalled_send_times_out(self):
        channel = create_mock_channel()
        channel.send.side_effect = never_returns
        connection = Connection(channel)

        sent = await asyncio.wait_for(
            connection.send("hello", timeout=0.05), timeout=2
        )

        assert sent is False


class TestTerminate:
    """Tests for Connection.terminate."""

    def test_terminate_aborts_channel(self):
        channel = create_mock_channel()
        connection = Connection(channel)

        connection.terminate()

        channel.abort.assert_called_once()
        assert not connection.is_open
