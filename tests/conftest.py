"""
Shared fixtures for the campus hub tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from campus_hub.api.app import create_app
from campus_hub.client.websocket import SocketClosed
from campus_hub.config import Settings
from campus_hub.entities import Role
from campus_hub.repositories import InMemoryCampusRepository
from campus_hub.services import CampusServices

# Monday 2026-01-05 09:00 UTC, 14:30 on campus (Asia/Kolkata).
START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def settings():
    """Settings for an in-memory store with fast password hashing."""
    return Settings(
        environment="test",
        store_backend="memory",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        campus_timezone="Asia/Kolkata",
        reminder_lead_minutes=30,
        graphql_http_url="http://campus.test/graphql",
        graphql_ws_url="ws://campus.test/graphql",
        ws_retry_attempts=3,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryCampusRepository()


@pytest.fixture
def services(settings, store, clock):
    return CampusServices.create(settings, store, clock)


@pytest.fixture
def faculty(services):
    """A registered faculty member: (token, user)."""
    return services.auth.register(
        "Asha Mehta",
        "asha@campus.example",
        "correct-horse",
        role=Role.FACULTY,
        department="Computer Engineering",
        designation="Professor",
    )


@pytest.fixture
def student(services):
    """A registered student: (token, user)."""
    return services.auth.register(
        "Ravi Patel",
        "ravi@campus.example",
        "correct-horse",
        role=Role.STUDENT,
        department="Computer Engineering",
        enrollment_no="21CE042",
    )


@pytest.fixture
def app(settings, store, clock):
    return create_app(settings, store=store, clock=clock, schedule_notifications=False)


@pytest.fixture
def client(app):
    """Create a test client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def gql(client):
    """POST a GraphQL operation and return the decoded body."""

    def execute(query, variables=None, token=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        response = client.post("/graphql", json={"query": query, "variables": variables or {}}, headers=headers)
        assert response.status_code == 200, response.text
        return response.json()

    return execute


_DROP = object()


class FakeSocket:
    """In-memory socket speaking to a scripted GraphQL-over-WebSocket server."""

    def __init__(self, subprotocol, reject=False):
        self.subprotocol = subprotocol
        self.reject = reject
        self.sent = []
        self.incoming = asyncio.Queue()
        self.closed = False

    async def send_json(self, data):
        if self.closed:
            raise SocketClosed("socket is closed")
        self.sent.append(data)
        if data["type"] == "connection_init":
            if self.reject:
                self.push({"type": "connection_error", "payload": {"message": "rejected"}})
            else:
                self.push({"type": "connection_ack"})

    async def receive_json(self):
        message = await self.incoming.get()
        if message is _DROP:
            raise SocketClosed("connection reset")
        return message

    async def close(self):
        self.closed = True

    def push(self, message):
        self.incoming.put_nowait(message)

    def drop(self):
        self.incoming.put_nowait(_DROP)

    def of_type(self, *types):
        return [m for m in self.sent if m["type"] in types]


class FakeServer:
    """Hands out fake sockets.

    The next ``failures`` connects are refused outright and the next
    ``rejections`` handshakes answer ``connection_error``.
    """

    def __init__(self):
        self.failures = 0
        self.rejections = 0
        self.attempts = 0
        self.sockets = []

    async def connect(self, url, subprotocol):
        self.attempts += 1
        if self.failures:
            self.failures -= 1
            raise OSError("connection refused")
        socket = FakeSocket(subprotocol, reject=self.rejections > 0)
        self.rejections = max(0, self.rejections - 1)
        self.sockets.append(socket)
        return socket


@pytest.fixture
def ws_server():
    return FakeServer()
