"""
Tests for stored records and the Redis campus repository.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest
import redis

from campus_hub.entities import AvailabilityStatus, Principal, Weekday
from campus_hub.repositories import RedisCampusRepository, records
from campus_hub.services import SlotRequest


@pytest.fixture
def full_faculty(services, faculty):
    """The faculty profile with a schedule and a date override."""
    user = faculty[1]
    principal = Principal(id=user.id, email=user.email, role=user.role)
    services.faculties.set_weekly_schedule(
        principal,
        [SlotRequest(day=Weekday.MONDAY, start_time="09:00", end_time="11:00", location="Room 204")],
    )
    services.faculties.update_availability(principal, AvailabilityStatus.BUSY, "Grading")
    return services.faculties.add_date_override(principal, date(2026, 1, 7), AvailabilityStatus.ON_LEAVE, "Conference")


def test_records_round_trip_users(faculty, student):
    for _, user in (faculty, student):
        assert records.user_from_json(records.dumps(user)) == user


def test_records_round_trip_faculties(full_faculty):
    assert records.faculty_from_json(records.dumps(full_faculty)) == full_faculty


def test_save_user_indexes_email(student):
    _, user = student
    client = MagicMock()
    pipe = client.pipeline.return_value
    repo = RedisCampusRepository(redis_client=client, prefix="test")

    repo.save_user(user)

    pipe.hset.assert_any_call("test:users", user.id, records.dumps(user))
    pipe.hset.assert_any_call("test:users:by_email", "ravi@campus.example", user.id)
    pipe.execute.assert_called_once()


def test_get_faculty_decodes_stored_json(full_faculty):
    client = MagicMock()
    client.hget.return_value = records.dumps(full_faculty)
    repo = RedisCampusRepository(redis_client=client, prefix="test")

    assert repo.get_faculty(full_faculty.id) == full_faculty
    client.hget.assert_called_once_with("test:faculties", full_faculty.id)


def test_missing_records_are_none():
    client = MagicMock()
    client.hget.return_value = None
    repo = RedisCampusRepository(redis_client=client)

    assert repo.get_user("nobody") is None
    assert repo.get_user_by_email("nobody@campus.example") is None


def test_list_broadcasts_with_no_limit_skips_redis():
    client = MagicMock()
    repo = RedisCampusRepository(redis_client=client)
    assert repo.list_broadcasts(0) == []
    client.zrevrange.assert_not_called()


def test_health_check():
    client = MagicMock()
    client.ping.return_value = True
    assert RedisCampusRepository(redis_client=client).health_check() is True

    client.ping.side_effect = redis.ConnectionError("down")
    assert RedisCampusRepository(redis_client=client).health_check() is False
