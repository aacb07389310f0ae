"""
Tests for the campus HTTP and GraphQL API.
"""

import time

import pytest
from fastapi.testclient import TestClient

from campus_hub.api.app import create_app
from campus_hub.errors import StoreUnavailableError
from campus_hub.repositories import InMemoryCampusRepository
from campus_hub.services.pubsub import NOTIFICATION_TOPIC

BOOK = """
mutation Book($input: BookAppointmentInput!) {
  bookAppointment(input: $input) { id status faculty { id name } student { id name } }
}
"""


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not met in time"
        time.sleep(0.01)


def booking(faculty_id, start="10:00", end="10:30"):
    return {
        "input": {
            "facultyId": faculty_id,
            "date": "2026-01-06",
            "startTime": start,
            "endTime": end,
            "purpose": "Project review",
        }
    }


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "SmartCampus backend is running"}


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready(client):
    """Test readiness endpoint with notifications disabled."""
    response = client.get("/api/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "store_healthy": True, "scheduler_running": False}


def test_startup_aborts_when_store_is_unreachable(settings, clock):
    """The app refuses to start without a healthy store."""

    class UnreachableStore(InMemoryCampusRepository):
        def health_check(self) -> bool:
            return False

    app = create_app(settings, store=UnreachableStore(), clock=clock, schedule_notifications=False)
    with pytest.raises(StoreUnavailableError):
        with TestClient(app):
            pass


def test_scheduler_runs_with_lifespan(settings, store, clock):
    """The notification check is started and stopped with the app."""
    app = create_app(settings, store=store, clock=clock)
    with TestClient(app) as test_client:
        assert test_client.get("/api/ready").json()["scheduler_running"] is True
        scheduler = app.state.scheduler
    assert scheduler.is_running is False


def test_public_fields_resolve_next_to_auth_errors(gql, faculty):
    """An anonymous caller gets public data plus a field error for private fields."""
    body = gql("{ faculties { id name } myAppointments { id } }")

    assert body["data"]["faculties"] == [{"id": faculty[1].id, "name": "Asha Mehta"}]
    assert body["data"]["myAppointments"] is None
    assert len(body["errors"]) == 1
    error = body["errors"][0]
    assert error["path"] == ["myAppointments"]
    assert error["message"] == "Authentication required"
    assert error["extensions"]["code"] == "UNAUTHENTICATED"


def test_invalid_token_is_anonymous(gql):
    body = gql("{ me { id } }", token="not-a-jwt")
    assert body["data"]["me"] is None
    assert body["errors"][0]["extensions"]["code"] == "UNAUTHENTICATED"


def test_register_login_and_me(gql):
    register = gql(
        """
        mutation Register($input: RegisterInput!) {
          register(input: $input) { token user { id email role enrollmentNo } }
        }
        """,
        {
            "input": {
                "name": "Meera Shah",
                "email": "Meera@Campus.example",
                "password": "long-enough",
                "enrollmentNo": "21CE007",
            }
        },
    )
    user = register["data"]["register"]["user"]
    assert user["email"] == "meera@campus.example"
    assert user["role"] == "STUDENT"
    assert user["enrollmentNo"] == "21CE007"

    login = gql(
        'mutation { login(email: "meera@campus.example", password: "long-enough") { token } }'
    )
    token = login["data"]["login"]["token"]

    me = gql("{ me { id name } }", token=token)
    assert me["data"]["me"] == {"id": user["id"], "name": "Meera Shah"}


def test_domain_errors_carry_codes(gql, student):
    body = gql(
        """
        mutation Register($input: RegisterInput!) {
          register(input: $input) { token }
        }
        """,
        {"input": {"name": "Ravi", "email": "ravi@campus.example", "password": "long-enough"}},
    )
    assert body["data"] is None
    assert body["errors"][0]["extensions"]["code"] == "CONFLICT"

    bad_login = gql('mutation { login(email: "ravi@campus.example", password: "wrong-pass") { token } }')
    assert bad_login["errors"][0]["extensions"]["code"] == "UNAUTHENTICATED"


def test_booking_flow(gql, faculty, student):
    faculty_token, faculty_user = faculty
    student_token, student_user = student

    booked = gql(BOOK, booking(faculty_user.id), token=student_token)
    appointment = booked["data"]["bookAppointment"]
    assert appointment["status"] == "PENDING"
    assert appointment["faculty"] == {"id": faculty_user.id, "name": "Asha Mehta"}
    assert appointment["student"] == {"id": student_user.id, "name": "Ravi Patel"}

    clash = gql(BOOK, booking(faculty_user.id, "10:15", "10:45"), token=student_token)
    assert clash["errors"][0]["extensions"]["code"] == "CONFLICT"

    approved = gql(
        'mutation($id: ID!) { respondToAppointment(id: $id, status: APPROVED, note: "See you") { status note } }',
        {"id": appointment["id"]},
        token=faculty_token,
    )
    assert approved["data"]["respondToAppointment"] == {"status": "APPROVED", "note": "See you"}

    mine = gql("{ myAppointments { id status } }", token=student_token)
    assert mine["data"]["myAppointments"] == [{"id": appointment["id"], "status": "APPROVED"}]

    notifications = gql("{ myNotifications { kind title } }", token=student_token)
    assert notifications["data"]["myNotifications"] == [
        {"kind": "APPOINTMENT_UPDATED", "title": "Appointment approved"}
    ]


def test_students_cannot_update_availability(gql, student):
    body = gql(
        "mutation { updateAvailability(input: {status: BUSY}) { id } }",
        token=student[0],
    )
    assert body["errors"][0]["extensions"]["code"] == "FORBIDDEN"


def test_availability_update_is_visible_in_faculty_list(gql, faculty):
    body = gql(
        'mutation { updateAvailability(input: {status: IN_MEETING, message: "Back at 4"}) '
        "{ availability { status message } } }",
        token=faculty[0],
    )
    assert body["data"]["updateAvailability"]["availability"] == {"status": "IN_MEETING", "message": "Back at 4"}

    listed = gql('{ faculties(department: "computer engineering") { availability { status } } }')
    assert listed["data"]["faculties"] == [{"availability": {"status": "IN_MEETING"}}]


@pytest.mark.parametrize(
    "subprotocol, subscribe_type, next_type",
    [
        ("graphql-ws", "start", "data"),
        ("graphql-transport-ws", "subscribe", "next"),
    ],
)
def test_subscription_authenticates_with_connection_params(
    client, gql, faculty, student, subprotocol, subscribe_type, next_type
):
    """Socket subscribers are identified by their connection-init params."""
    faculty_token, faculty_user = faculty
    pubsub = client.app.state.services.pubsub

    with client.websocket_connect("/graphql", subprotocols=[subprotocol]) as ws:
        ws.send_json({"type": "connection_init", "payload": {"Authorization": f"Bearer {faculty_token}"}})
        assert ws.receive_json()["type"] == "connection_ack"
        ws.send_json(
            {
                "id": "1",
                "type": subscribe_type,
                "payload": {"query": "subscription { notificationReceived { kind title } }"},
            }
        )
        wait_for(lambda: pubsub.subscriber_count(NOTIFICATION_TOPIC) == 1)

        gql(BOOK, booking(faculty_user.id), token=student[0])

        message = ws.receive_json()
        assert message["type"] == next_type
        assert message["id"] == "1"
        assert message["payload"]["data"]["notificationReceived"] == {
            "kind": "APPOINTMENT_REQUESTED",
            "title": "New appointment request",
        }
