"""Lazy, self-healing GraphQL-over-WebSocket client.

One socket is shared by every active subscription. It is opened by the first
subscription, re-established with a bounded randomized back-off when it
fails, and closed again once idle. Connection params are evaluated on every
attempt, so a rotated token is picked up by the next reconnect.

States::

    disconnected -> connecting -> connected -> error -> reconnecting -> connecting
                                            \\-> closed (terminal, via close())
"""

import asyncio
import inspect
import itertools
import json
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import aiohttp
import structlog

from campus_hub.client.operations import Operation
from campus_hub.client.results import TransportError

logger = structlog.get_logger(__name__)

GRAPHQL_WS_PROTOCOL = "graphql-ws"
GRAPHQL_TRANSPORT_WS_PROTOCOL = "graphql-transport-ws"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


@dataclass(frozen=True)
class Dialect:
    """Message vocabulary of one GraphQL-over-WebSocket subprotocol."""

    subprotocol: str
    subscribe: str
    next: str
    stop: str
    terminate: str | None = None


DIALECTS = {
    GRAPHQL_WS_PROTOCOL: Dialect(
        subprotocol=GRAPHQL_WS_PROTOCOL,
        subscribe="start",
        next="data",
        stop="stop",
        terminate="connection_terminate",
    ),
    GRAPHQL_TRANSPORT_WS_PROTOCOL: Dialect(
        subprotocol=GRAPHQL_TRANSPORT_WS_PROTOCOL,
        subscribe="subscribe",
        next="next",
        stop="complete",
    ),
}


class SocketClosed(Exception):
    """The underlying socket closed or failed while reading."""


class ConnectionRejected(Exception):
    """The server refused ``connection_init``."""


class Socket(Protocol):
    async def send_json(self, data: dict[str, Any]) -> None:
        ...

    async def receive_json(self) -> dict[str, Any]:
        """Next decoded message. Raises SocketClosed once the socket is gone."""
        ...

    async def close(self) -> None:
        ...


ConnectFunction = Callable[[str, str], Awaitable[Socket]]
ConnectionParams = Callable[[], dict[str, Any] | Awaitable[dict[str, Any]]]


class AiohttpSocket:
    """Socket adapter over an aiohttp client websocket."""

    def __init__(self, session: aiohttp.ClientSession, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._session = session
        self._ws = ws

    async def send_json(self, data: dict[str, Any]) -> None:
        await self._ws.send_json(data)

    async def receive_json(self) -> dict[str, Any]:
        msg = await self._ws.receive()
        if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
            return json.loads(msg.data)
        if msg.type == aiohttp.WSMsgType.ERROR:
            raise SocketClosed(str(self._ws.exception()))
        raise SocketClosed(f"socket closed with code {self._ws.close_code}")

    async def close(self) -> None:
        try:
            await self._ws.close()
        finally:
            await self._session.close()


async def aiohttp_connect(url: str, subprotocol: str) -> AiohttpSocket:
    """Open a websocket negotiating ``subprotocol``."""
    session = aiohttp.ClientSession()
    try:
        ws = await session.ws_connect(url, protocols=(subprotocol,), heartbeat=30)
    except BaseException:
        await session.close()
        raise
    return AiohttpSocket(session, ws)


def randomized_backoff(retries: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """Exponential delay for the ``retries``-th retry plus 0.3-3s of jitter."""
    return min(base * 2 ** (retries - 1), max_delay) + random.uniform(0.3, 3.0)


_COMPLETE = object()


@dataclass
class _Subscription:
    id: str
    payload: dict[str, Any]
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    done: bool = False


class SubscriptionClient:
    """Multiplexes GraphQL subscriptions over one lazily opened socket.

    Args:
        url: ``ws://`` or ``wss://`` endpoint
        connection_params: Called before every connection attempt; the result
            is the ``connection_init`` payload
        subprotocol: ``graphql-ws`` or ``graphql-transport-ws``
        retry_attempts: Retries after a failure before subscribers are failed
        lazy_close_timeout: Seconds to keep an idle socket open after the last
            subscription ends; None keeps it open until ``close()``
        ack_timeout: Seconds to wait for ``connection_ack``
        connect: Socket factory, ``(url, subprotocol) -> Socket``
        sleep: Awaitable sleep used between retries and for idle close
        retry_wait: Maps the retry number (from 1) to a delay in seconds
    """

    def __init__(
        self,
        url: str,
        connection_params: ConnectionParams | None = None,
        subprotocol: str = GRAPHQL_WS_PROTOCOL,
        retry_attempts: int = 10,
        lazy_close_timeout: float | None = 0,
        ack_timeout: float = 10.0,
        connect: ConnectFunction = aiohttp_connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        retry_wait: Callable[[int], float] = randomized_backoff,
    ) -> None:
        if subprotocol not in DIALECTS:
            raise ValueError(f"Unsupported subprotocol {subprotocol!r}")
        if retry_attempts < 0:
            raise ValueError("retry_attempts must not be negative")
        self.url = url
        self._connection_params = connection_params or dict
        self._dialect = DIALECTS[subprotocol]
        self._retry_attempts = retry_attempts
        self._lazy_close_timeout = lazy_close_timeout
        self._ack_timeout = ack_timeout
        self._connect = connect
        self._sleep = sleep
        self._retry_wait = retry_wait

        self._state = ConnectionState.DISCONNECTED
        self._subscriptions: dict[str, _Subscription] = {}
        self._ids = itertools.count(1)
        self._socket: Socket | None = None
        self._runner: asyncio.Task | None = None
        self._idle_task: asyncio.Task | None = None
        self._closed = False
        self.connection_attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def subprotocol(self) -> str:
        return self._dialect.subprotocol

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self, operation: Operation) -> AsyncIterator[dict[str, Any]]:
        """Yield raw ``{"data", "errors"}`` payloads for one subscription.

        Ends when the server completes the subscription. Raises TransportError
        if the socket fails and every retry is exhausted.
        """
        if self._closed:
            raise TransportError("Subscription client is closed")

        sub = _Subscription(id=str(next(self._ids)), payload=operation.to_payload())
        self._subscriptions[sub.id] = sub
        self._cancel_idle_close()
        self._ensure_running()
        if self._state is ConnectionState.CONNECTED:
            await self._send_subscribe(sub)

        try:
            while True:
                item = await sub.queue.get()
                if item is _COMPLETE:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self._subscriptions.pop(sub.id, None)
            if not sub.done and self._state is ConnectionState.CONNECTED:
                await self._send({"id": sub.id, "type": self._dialect.stop})
            self._schedule_idle_close()

    async def close(self) -> None:
        """Close the socket and end every subscription. The client cannot be reused."""
        if self._closed:
            return
        self._closed = True
        self._cancel_idle_close()
        for sub in self._subscriptions.values():
            sub.done = True
            sub.queue.put_nowait(_COMPLETE)
        self._subscriptions.clear()
        runner, self._runner = self._runner, None
        if runner is not None:
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass
        self._set_state(ConnectionState.CLOSED)

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug("ws_state_changed", url=self.url, previous=self._state.value, state=state.value)
            self._state = state

    def _ensure_running(self) -> None:
        if self._runner is None or self._runner.done():
            self._runner = asyncio.create_task(self._run(), name="graphql-ws-connection")

    def _cancel_idle_close(self) -> None:
        if self._idle_task is not None:
            self._idle_task.cancel()
            self._idle_task = None

    def _schedule_idle_close(self) -> None:
        if self._subscriptions or self._runner is None or self._lazy_close_timeout is None or self._closed:
            return
        self._cancel_idle_close()
        self._idle_task = asyncio.create_task(self._close_when_idle(self._lazy_close_timeout))

    async def _close_when_idle(self, timeout: float) -> None:
        await self._sleep(timeout)
        if self._subscriptions:
            return
        self._idle_task = None
        runner, self._runner = self._runner, None
        if runner is None:
            return
        runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            pass
        if self._runner is None and not self._closed:
            self._set_state(ConnectionState.DISCONNECTED)

    async def _run(self) -> None:
        retries = 0
        try:
            while self._subscriptions and not self._closed:
                if retries:
                    if retries > self._retry_attempts:
                        self._fail_all(
                            TransportError(f"Could not connect to {self.url} after {retries} attempts")
                        )
                        break
                    self._set_state(ConnectionState.RECONNECTING)
                    await self._sleep(self._retry_wait(retries))
                    if not self._subscriptions:
                        break

                self._set_state(ConnectionState.CONNECTING)
                try:
                    socket = await self._open()
                except Exception as e:
                    self._on_error(e, retries)
                    retries += 1
                    continue

                retries = 0
                self._socket = socket
                self._set_state(ConnectionState.CONNECTED)
                logger.info("ws_connected", url=self.url, subprotocol=self._dialect.subprotocol)
                pending = [sub for sub in self._subscriptions.values() if not sub.done]
                try:
                    for sub in pending:
                        await self._send_subscribe(sub)
                    await self._read_loop(socket)
                except Exception as e:
                    self._on_error(e, retries)
                    retries += 1
                finally:
                    if self._socket is socket:
                        self._socket = None
                    await self._close_socket(socket)
        finally:
            if self._runner is asyncio.current_task():
                self._runner = None
                self._set_state(ConnectionState.CLOSED if self._closed else ConnectionState.DISCONNECTED)
            elif self._runner is None and not self._closed:
                # Detached by an idle close; the socket is already closed here.
                self._set_state(ConnectionState.DISCONNECTED)
            logger.info("ws_closed", url=self.url)

    async def _open(self) -> Socket:
        self.connection_attempts += 1
        socket = await self._connect(self.url, self._dialect.subprotocol)
        try:
            params = self._connection_params()
            if inspect.isawaitable(params):
                params = await params
            await socket.send_json({"type": "connection_init", "payload": params or {}})
            await asyncio.wait_for(self._await_ack(socket), self._ack_timeout)
        except BaseException:
            await self._close_socket(socket)
            raise
        return socket

    async def _await_ack(self, socket: Socket) -> None:
        while True:
            message = await socket.receive_json()
            kind = message.get("type")
            if kind == "connection_ack":
                return
            if kind == "connection_error":
                raise ConnectionRejected(str(message.get("payload")))
            if kind == "ping":
                await socket.send_json({"type": "pong"})

    async def _read_loop(self, socket: Socket) -> None:
        while True:
            message = await socket.receive_json()
            await self._dispatch(socket, message)

    async def _dispatch(self, socket: Socket, message: dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == "ping":
            await socket.send_json({"type": "pong"})
            return

        sub = self._subscriptions.get(str(message.get("id")))
        if sub is None:
            return
        if kind == self._dialect.next:
            sub.queue.put_nowait(message.get("payload") or {})
        elif kind == "error":
            errors = message.get("payload")
            if not isinstance(errors, list):
                errors = [errors or {"message": "Subscription failed"}]
            sub.done = True
            sub.queue.put_nowait({"data": None, "errors": errors})
            sub.queue.put_nowait(_COMPLETE)
        elif kind == "complete":
            sub.done = True
            sub.queue.put_nowait(_COMPLETE)

    async def _send_subscribe(self, sub: _Subscription) -> None:
        await self._send({"id": sub.id, "type": self._dialect.subscribe, "payload": sub.payload})

    async def _send(self, message: dict[str, Any]) -> None:
        socket = self._socket
        if socket is None:
            return
        try:
            await socket.send_json(message)
        except Exception as e:
            # The read loop sees the same failure and reconnects.
            logger.debug("ws_send_failed", url=self.url, error=str(e))

    async def _close_socket(self, socket: Socket) -> None:
        try:
            if self._dialect.terminate is not None:
                await socket.send_json({"type": self._dialect.terminate})
        except Exception as e:
            logger.debug("ws_send_failed", url=self.url, error=str(e))
        try:
            await socket.close()
        except Exception as e:
            logger.debug("ws_close_failed", url=self.url, error=str(e))

    def _on_error(self, error: Exception, retries: int) -> None:
        self._set_state(ConnectionState.ERROR)
        logger.warning("ws_error", url=self.url, error=str(error), retries=retries)

    def _fail_all(self, error: TransportError) -> None:
        subs = list(self._subscriptions.values())
        self._subscriptions.clear()
        for sub in subs:
            sub.done = True
            sub.queue.put_nowait(error)
        logger.error("ws_retries_exhausted", url=self.url, subscribers=len(subs))
