"""
Tests for the lazy, reconnecting subscription socket.
"""

import asyncio

import pytest

from campus_hub.client import (
    GRAPHQL_TRANSPORT_WS_PROTOCOL,
    ConnectionState,
    MemoryTokenStorage,
    Operation,
    SubscriptionClient,
    TransportError,
    bearer_value,
)

TOKEN_KEY = "ldce_auth_token"
BROADCASTS = Operation.from_string("subscription { broadcastCreated { id title } }")
NOTIFICATIONS = Operation.from_string("subscription { notificationReceived { id } }")


class Sleeper:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)
        await asyncio.sleep(0)


async def eventually(predicate, turns=500):
    for _ in range(turns):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not met")


@pytest.fixture
def storage():
    return MemoryTokenStorage({TOKEN_KEY: "first-token"})


@pytest.fixture
def sleeper():
    return Sleeper()


def make_client(ws_server, storage, sleeper, **kwargs):
    kwargs.setdefault("retry_wait", lambda retries: float(retries))
    return SubscriptionClient(
        "ws://campus.test/graphql",
        connection_params=lambda: {"Authorization": bearer_value(storage.get_item(TOKEN_KEY))},
        connect=ws_server.connect,
        sleep=sleeper,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_connects_lazily_and_closes_when_idle(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper)
    await asyncio.sleep(0)
    assert ws_server.attempts == 0
    assert client.state is ConnectionState.DISCONNECTED

    stream = client.subscribe(BROADCASTS)
    first = asyncio.create_task(stream.__anext__())
    await eventually(lambda: ws_server.sockets and ws_server.sockets[0].of_type("start"))

    socket = ws_server.sockets[0]
    assert socket.subprotocol == "graphql-ws"
    assert client.state is ConnectionState.CONNECTED
    assert socket.sent[0] == {"type": "connection_init", "payload": {"Authorization": "Bearer first-token"}}
    assert socket.of_type("start") == [{"id": "1", "type": "start", "payload": BROADCASTS.to_payload()}]

    socket.push({"id": "1", "type": "data", "payload": {"data": {"broadcastCreated": {"id": "b1"}}}})
    assert await first == {"data": {"broadcastCreated": {"id": "b1"}}}

    socket.push({"id": "1", "type": "complete"})
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()

    await eventually(lambda: client.state is ConnectionState.DISCONNECTED)
    assert socket.closed
    assert socket.of_type("connection_terminate")
    assert not socket.of_type("stop")


@pytest.mark.asyncio
async def test_subscriptions_share_one_socket(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper)
    broadcasts = client.subscribe(BROADCASTS)
    notifications = client.subscribe(NOTIFICATIONS)
    first_b = asyncio.create_task(broadcasts.__anext__())
    first_n = asyncio.create_task(notifications.__anext__())
    await eventually(lambda: ws_server.sockets and len(ws_server.sockets[0].of_type("start")) == 2)

    socket = ws_server.sockets[0]
    socket.push({"id": "2", "type": "data", "payload": {"data": {"n": 1}}})
    socket.push({"id": "1", "type": "data", "payload": {"data": {"b": 1}}})
    assert await first_b == {"data": {"b": 1}}
    assert await first_n == {"data": {"n": 1}}
    assert ws_server.attempts == 1
    assert client.active_subscriptions == 2

    await broadcasts.aclose()
    assert socket.of_type("stop") == [{"id": "1", "type": "stop"}]
    await asyncio.sleep(0)
    assert client.state is ConnectionState.CONNECTED
    assert not socket.closed

    await notifications.aclose()
    await eventually(lambda: socket.closed)
    assert client.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_idle_close_reports_disconnected_with_the_socket(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper)
    stream = client.subscribe(BROADCASTS)
    pending = asyncio.create_task(stream.__anext__())
    await eventually(lambda: ws_server.sockets and ws_server.sockets[0].of_type("start"))
    socket = ws_server.sockets[0]
    socket.push({"id": "1", "type": "data", "payload": {"data": {}}})
    await pending

    await stream.aclose()
    for _ in range(50):
        # The socket never reads as closed while the client still claims to be connected.
        assert not (socket.closed and client.state is ConnectionState.CONNECTED)
        await asyncio.sleep(0)
    assert socket.closed
    assert client.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_retries_are_bounded(ws_server, storage, sleeper):
    ws_server.failures = 100
    client = make_client(ws_server, storage, sleeper, retry_attempts=3)

    stream = client.subscribe(BROADCASTS)
    with pytest.raises(TransportError):
        await stream.__anext__()

    assert ws_server.attempts == 4
    assert sleeper.delays == [1.0, 2.0, 3.0]
    await eventually(lambda: client.state is ConnectionState.DISCONNECTED)
    assert client.active_subscriptions == 0

    # A later subscription starts a fresh lazy connect.
    ws_server.failures = 0
    again = client.subscribe(BROADCASTS)
    pending = asyncio.create_task(again.__anext__())
    await eventually(lambda: client.state is ConnectionState.CONNECTED)
    assert ws_server.attempts == 5
    ws_server.sockets[0].push({"id": "2", "type": "data", "payload": {"data": {"ok": True}}})
    assert await pending == {"data": {"ok": True}}
    await client.close()


@pytest.mark.asyncio
async def test_reconnect_resubscribes_with_fresh_params(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper)
    stream = client.subscribe(BROADCASTS)
    pending = asyncio.create_task(stream.__anext__())
    await eventually(lambda: ws_server.sockets and ws_server.sockets[0].of_type("start"))

    storage.set_item(TOKEN_KEY, "rotated-token")
    ws_server.failures = 1
    ws_server.sockets[0].drop()

    await eventually(lambda: len(ws_server.sockets) == 2 and ws_server.sockets[1].of_type("start"))
    second = ws_server.sockets[1]
    assert ws_server.attempts == 3
    assert second.sent[0]["payload"] == {"Authorization": "Bearer rotated-token"}
    assert second.of_type("start")[0]["id"] == "1"
    assert ws_server.sockets[0].closed

    second.push({"id": "1", "type": "data", "payload": {"data": {"after": "reconnect"}}})
    assert await pending == {"data": {"after": "reconnect"}}
    await stream.aclose()
    await client.close()


@pytest.mark.asyncio
async def test_rejected_init_counts_as_failed_attempt(ws_server, storage, sleeper):
    ws_server.rejections = 1
    client = make_client(ws_server, storage, sleeper)
    stream = client.subscribe(BROADCASTS)
    pending = asyncio.create_task(stream.__anext__())
    sockets = ws_server.sockets
    await eventually(lambda: len(sockets) == 2 and sockets[1].of_type("start"))

    assert sockets[0].closed
    assert not sockets[0].of_type("start")
    sockets[1].push({"id": "1", "type": "data", "payload": {"data": {}}})
    assert await pending == {"data": {}}
    await client.close()


@pytest.mark.asyncio
async def test_graphql_transport_ws_dialect(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper, subprotocol=GRAPHQL_TRANSPORT_WS_PROTOCOL)
    stream = client.subscribe(BROADCASTS)
    pending = asyncio.create_task(stream.__anext__())
    await eventually(lambda: ws_server.sockets and ws_server.sockets[0].of_type("subscribe"))

    socket = ws_server.sockets[0]
    assert socket.subprotocol == "graphql-transport-ws"
    socket.push({"type": "ping"})
    socket.push({"id": "1", "type": "next", "payload": {"data": {"x": 1}}})
    assert await pending == {"data": {"x": 1}}
    assert socket.of_type("pong") == [{"type": "pong"}]

    await stream.aclose()
    assert socket.of_type("complete") == [{"id": "1", "type": "complete"}]
    await eventually(lambda: socket.closed)
    assert not socket.of_type("connection_terminate")


@pytest.mark.asyncio
async def test_operation_errors_end_the_subscription(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper)
    stream = client.subscribe(NOTIFICATIONS)
    pending = asyncio.create_task(stream.__anext__())
    await eventually(lambda: ws_server.sockets and ws_server.sockets[0].of_type("start"))

    ws_server.sockets[0].push({"id": "1", "type": "error", "payload": {"message": "Authentication required"}})
    assert await pending == {"data": None, "errors": [{"message": "Authentication required"}]}
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()


@pytest.mark.asyncio
async def test_keeps_idle_socket_open_without_timeout(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper, lazy_close_timeout=None)
    stream = client.subscribe(BROADCASTS)
    pending = asyncio.create_task(stream.__anext__())
    await eventually(lambda: ws_server.sockets and ws_server.sockets[0].of_type("start"))
    ws_server.sockets[0].push({"id": "1", "type": "data", "payload": {"data": {}}})
    await pending
    await stream.aclose()

    for _ in range(20):
        await asyncio.sleep(0)
    assert client.state is ConnectionState.CONNECTED
    assert not ws_server.sockets[0].closed
    await client.close()
    assert ws_server.sockets[0].closed


@pytest.mark.asyncio
async def test_close_is_terminal(ws_server, storage, sleeper):
    client = make_client(ws_server, storage, sleeper)
    stream = client.subscribe(BROADCASTS)
    pending = asyncio.create_task(stream.__anext__())
    await eventually(lambda: client.state is ConnectionState.CONNECTED)

    await client.close()
    with pytest.raises(StopAsyncIteration):
        await pending
    assert client.state is ConnectionState.CLOSED
    assert ws_server.sockets[0].closed

    with pytest.raises(TransportError):
        await client.subscribe(BROADCASTS).__anext__()
