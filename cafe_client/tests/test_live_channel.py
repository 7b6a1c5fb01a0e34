"""Tests for the live update channel."""

import json
from unittest.mock import MagicMock

import pytest

from cafe_client.errors import ParseError
from cafe_client.live import ConnectionState, LiveUpdateChannel, decode_frame
from client_fakes import FakeConnector, eventually, settle

REFRESH = json.dumps({"type": "refresh_orders"})


@pytest.fixture
def channel(connector):
    """Channel without reconnection, wired to the fake connector."""
    return LiveUpdateChannel("ws://cafe.test/ws", connect=connector)


def test_decode_frame_accepts_text_and_bytes():
    """Text and UTF-8 binary frames decode to the same message."""
    assert decode_frame(REFRESH).is_refresh
    assert decode_frame(REFRESH.encode("utf-8")).is_refresh
    message = decode_frame('{"type": "hello", "message": "hi"}')
    assert message.type == "hello"
    assert message.message == "hi"
    assert not message.is_refresh


@pytest.mark.parametrize(
    "raw",
    [
        b"\xff\xfe\x00",
        "not json",
        "[1, 2, 3]",
        '{"message": "no type"}',
        '{"type": 5}',
        '{"type": "refresh_orders", "message": {"nested": true}}',
    ],
)
def test_decode_frame_rejects_malformed_frames(raw):
    """Bad encodings and unexpected shapes raise ParseError."""
    with pytest.raises(ParseError):
        decode_frame(raw)


def test_refresh_frame_invokes_subscriber(channel):
    """A refresh_orders frame calls the subscriber once."""
    callback = MagicMock()
    channel.subscribe(callback)

    channel.dispatch(REFRESH)

    callback.assert_called_once()
    assert callback.call_args.args[0].type == "refresh_orders"
    assert channel.stats["refresh_signals"] == 1


def test_other_and_malformed_frames_are_ignored(channel):
    """Unknown types and garbage never reach the subscriber and never raise."""
    callback = MagicMock()
    channel.subscribe(callback)

    channel.dispatch(json.dumps({"type": "menu_changed"}))
    channel.dispatch("{{{")

    callback.assert_not_called()
    assert channel.stats["ignored"] == 1
    assert channel.stats["parse_errors"] == 1
    assert channel.stats["frames_received"] == 2


def test_replaced_subscriber_receives_delivery(channel):
    """Delivery always goes to the current subscriber; stale handles cannot remove it."""
    first, second = MagicMock(), MagicMock()
    old = channel.subscribe(first)
    new = channel.subscribe(second)

    old.unsubscribe()
    channel.dispatch(REFRESH)

    first.assert_not_called()
    second.assert_called_once()
    assert new.active and not old.active

    new.unsubscribe()
    channel.dispatch(REFRESH)
    second.assert_called_once()


def test_subscriber_errors_are_contained(channel):
    """An exception in the subscriber is logged, not raised."""
    channel.subscribe(MagicMock(side_effect=RuntimeError("boom")))

    message = channel.dispatch(REFRESH)

    assert message.is_refresh


@pytest.mark.asyncio
async def test_open_connects_and_close_disconnects(channel, connector):
    """Opening reports connected; closing closes the socket and reports disconnected."""
    states = []
    channel.on_state_change(states.append)

    await channel.open()
    await eventually(lambda: channel.connected)
    assert connector.urls == ["ws://cafe.test/ws"]

    await channel.close()

    assert connector.latest.closed
    assert channel.state is ConnectionState.DISCONNECTED
    assert states == [ConnectionState.CONNECTED, ConnectionState.DISCONNECTED]
    assert not channel.is_open


@pytest.mark.asyncio
async def test_frames_from_socket_reach_subscriber(channel, connector):
    """Frames read from the socket are dispatched in order."""
    received = []
    channel.subscribe(received.append)

    async with channel:
        await eventually(lambda: channel.connected)
        connector.latest.push(REFRESH)
        connector.latest.push_json({"type": "other"})
        connector.latest.push(REFRESH)
        await eventually(lambda: channel.stats["frames_received"] == 3)

    assert len(received) == 2


@pytest.mark.asyncio
async def test_server_close_without_retry_stops_channel(channel, connector):
    """With reconnection disabled a dropped connection stays down."""
    await channel.open()
    await eventually(lambda: channel.connected)

    connector.latest.server_close()
    await eventually(lambda: not channel.is_open)

    assert channel.state is ConnectionState.DISCONNECTED
    assert len(connector.urls) == 1
    await channel.close()


@pytest.mark.asyncio
async def test_transport_error_is_not_raised(channel, connector):
    """A socket error is logged and reported as a disconnect."""
    await channel.open()
    await eventually(lambda: channel.connected)

    connector.latest.fail(ConnectionResetError("reset by peer"))
    await eventually(lambda: not channel.is_open)

    assert channel.state is ConnectionState.DISCONNECTED
    await channel.close()


@pytest.mark.asyncio
async def test_reconnects_with_backoff_after_failures():
    """Failed attempts are retried until the connection succeeds."""
    connector = FakeConnector(fail_times=2)
    channel = LiveUpdateChannel("ws://cafe.test/ws", max_retries=3, backoff_seconds=0.001, connect=connector)

    await channel.open()
    await eventually(lambda: channel.connected)

    assert len(connector.urls) == 3
    assert channel.stats["reconnects"] == 2
    await channel.close()


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    """Reconnection is bounded."""
    connector = FakeConnector(fail_times=10)
    channel = LiveUpdateChannel("ws://cafe.test/ws", max_retries=2, backoff_seconds=0.001, connect=connector)

    await channel.open()
    await eventually(lambda: not channel.is_open)

    assert len(connector.urls) == 3
    assert not channel.connected


@pytest.mark.asyncio
async def test_connections_dropped_before_any_frame_count_as_failures():
    """A server that accepts and immediately closes cannot cause endless reconnects."""
    connector = FakeConnector(close_on_open=True)
    channel = LiveUpdateChannel("ws://cafe.test/ws", max_retries=2, backoff_seconds=0.001, connect=connector)

    await channel.open()
    await eventually(lambda: not channel.is_open)

    assert len(connector.urls) == 3
    assert channel.stats["reconnects"] == 2
    assert channel.state is ConnectionState.DISCONNECTED


def test_reconnect_delay_doubles_up_to_cap():
    """Backoff grows per consecutive attempt and is capped."""
    channel = LiveUpdateChannel("ws://cafe.test/ws", backoff_seconds=0.5, max_backoff_seconds=3.0)

    assert [channel.reconnect_delay(attempt) for attempt in range(1, 6)] == [0.5, 1.0, 2.0, 3.0, 3.0]


@pytest.mark.asyncio
async def test_reconnect_does_not_duplicate_delivery():
    """Each refresh frame is delivered once, across a reconnect."""
    connector = FakeConnector()
    channel = LiveUpdateChannel("ws://cafe.test/ws", max_retries=1, backoff_seconds=0.001, connect=connector)
    callback = MagicMock()
    channel.subscribe(callback)

    await channel.open()
    await eventually(lambda: channel.connected)
    connector.latest.push(REFRESH)
    connector.latest.server_close()
    await eventually(lambda: len(connector.sockets) == 2 and channel.connected)

    connector.latest.push(REFRESH)
    await eventually(lambda: channel.stats["frames_received"] == 2)
    await settle()

    assert callback.call_count == 2
    await channel.close()


@pytest.mark.asyncio
async def test_open_twice_keeps_single_connection(channel, connector):
    """A second open while running does not start another connection."""
    await channel.open()
    await channel.open()
    await eventually(lambda: channel.connected)
    await settle()

    assert len(connector.urls) == 1
    await channel.close()
