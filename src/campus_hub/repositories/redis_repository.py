"""Redis implementation of CampusStore.

Each entity kind lives in one hash (id -> JSON record). Secondary orderings
use sorted sets scored by creation time:

    {prefix}:users                      hash   id -> user JSON
    {prefix}:users:by_email             hash   email -> id
    {prefix}:faculties                  hash   id -> faculty JSON
    {prefix}:appointments               hash   id -> appointment JSON
    {prefix}:appointments:timeline      zset   id scored by created_at
    {prefix}:broadcasts                 hash   id -> broadcast JSON
    {prefix}:broadcasts:timeline        zset   id scored by created_at
    {prefix}:notifications              hash   id -> notification JSON
    {prefix}:notifications:user:{id}    zset   id scored by created_at
"""

import redis
import structlog

from campus_hub.config import Settings, get_redis_client
from campus_hub.entities import Appointment, Broadcast, Faculty, Notification, User

from . import records

logger = structlog.get_logger(__name__)


class RedisCampusRepository:
    """Redis-backed campus store.

    This class satisfies the CampusStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        prefix: str = "campus",
    ) -> None:
        """Initialize the Redis campus repository.

        Args:
            redis_client: Redis client instance (``decode_responses=True``).
                If None, creates one from settings.
            prefix: Key namespace for all records.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = prefix

    @classmethod
    def create(cls, settings: Settings) -> "RedisCampusRepository":
        """Factory method to create RedisCampusRepository from settings.

        Args:
            settings: Application settings (Redis URL, password, key prefix)

        Returns:
            Configured RedisCampusRepository
        """
        return cls(redis_client=get_redis_client(settings), prefix=settings.store_prefix)

    def _key(self, *parts: str) -> str:
        return ":".join((self._prefix, *parts))

    # Users

    def save_user(self, user: User) -> None:
        pipe = self._client.pipeline()
        pipe.hset(self._key("users"), user.id, records.dumps(user))
        pipe.hset(self._key("users", "by_email"), user.email.lower(), user.id)
        pipe.execute()

    def get_user(self, user_id: str) -> User | None:
        raw = self._client.hget(self._key("users"), user_id)
        return records.user_from_json(raw) if raw else None

    def get_user_by_email(self, email: str) -> User | None:
        user_id = self._client.hget(self._key("users", "by_email"), email.lower())
        return self.get_user(user_id) if user_id else None

    # Faculties

    def save_faculty(self, faculty: Faculty) -> None:
        self._client.hset(self._key("faculties"), faculty.id, records.dumps(faculty))

    def get_faculty(self, faculty_id: str) -> Faculty | None:
        raw = self._client.hget(self._key("faculties"), faculty_id)
        return records.faculty_from_json(raw) if raw else None

    def list_faculties(self) -> list[Faculty]:
        raws = self._client.hvals(self._key("faculties"))
        faculties = [records.faculty_from_json(raw) for raw in raws]
        faculties.sort(key=lambda f: (f.name.lower(), f.id))
        return faculties

    # Appointments

    def save_appointment(self, appointment: Appointment) -> None:
        pipe = self._client.pipeline()
        pipe.hset(self._key("appointments"), appointment.id, records.dumps(appointment))
        pipe.zadd(
            self._key("appointments", "timeline"),
            {appointment.id: appointment.created_at.timestamp()},
        )
        pipe.execute()

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        raw = self._client.hget(self._key("appointments"), appointment_id)
        return records.appointment_from_json(raw) if raw else None

    def list_appointments(self) -> list[Appointment]:
        ids = self._client.zrange(self._key("appointments", "timeline"), 0, -1)
        return self._load_many("appointments", ids, records.appointment_from_json)

    # Broadcasts

    def save_broadcast(self, broadcast: Broadcast) -> None:
        pipe = self._client.pipeline()
        pipe.hset(self._key("broadcasts"), broadcast.id, records.dumps(broadcast))
        pipe.zadd(
            self._key("broadcasts", "timeline"),
            {broadcast.id: broadcast.created_at.timestamp()},
        )
        pipe.execute()

    def list_broadcasts(self, limit: int) -> list[Broadcast]:
        if limit <= 0:
            return []
        ids = self._client.zrevrange(self._key("broadcasts", "timeline"), 0, limit - 1)
        return self._load_many("broadcasts", ids, records.broadcast_from_json)

    # Notifications

    def save_notification(self, notification: Notification) -> None:
        pipe = self._client.pipeline()
        pipe.hset(self._key("notifications"), notification.id, records.dumps(notification))
        pipe.zadd(
            self._key("notifications", "user", notification.user_id),
            {notification.id: notification.created_at.timestamp()},
        )
        pipe.execute()

    def get_notification(self, notification_id: str) -> Notification | None:
        raw = self._client.hget(self._key("notifications"), notification_id)
        return records.notification_from_json(raw) if raw else None

    def list_notifications(self, user_id: str) -> list[Notification]:
        ids = self._client.zrevrange(self._key("notifications", "user", user_id), 0, -1)
        return self._load_many("notifications", ids, records.notification_from_json)

    def _load_many(self, kind: str, ids: list[str], decode) -> list:
        if not ids:
            return []
        raws = self._client.hmget(self._key(kind), ids)
        return [decode(raw) for raw in raws if raw]

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
