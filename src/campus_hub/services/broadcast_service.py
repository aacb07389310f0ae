"""Broadcast announcements."""

import uuid

import structlog

from campus_hub.entities import Audience, Broadcast, Principal, Role
from campus_hub.errors import PermissionDeniedError, ValidationError
from campus_hub.protocols import CampusStore, Clock, SystemClock

from .pubsub import BROADCAST_TOPIC, PubSub

logger = structlog.get_logger(__name__)

_AUDIENCES_BY_ROLE = {
    Role.STUDENT: {Audience.ALL, Audience.STUDENTS},
    Role.FACULTY: {Audience.ALL, Audience.FACULTY},
    Role.ADMIN: set(Audience),
}


class BroadcastService:
    def __init__(self, store: CampusStore, pubsub: PubSub, clock: Clock | None = None) -> None:
        self._store = store
        self._pubsub = pubsub
        self._clock = clock or SystemClock()

    def create(
        self,
        principal: Principal,
        title: str,
        message: str,
        audience: Audience = Audience.ALL,
    ) -> Broadcast:
        """Publish an announcement. Faculty and admins only."""
        if principal.is_student:
            raise PermissionDeniedError("Students cannot send broadcasts")
        if not title.strip() or not message.strip():
            raise ValidationError("Title and message are required")

        broadcast = Broadcast(
            id=uuid.uuid4().hex,
            author_id=principal.id,
            title=title.strip(),
            message=message.strip(),
            audience=audience,
            created_at=self._clock.now(),
        )
        self._store.save_broadcast(broadcast)
        delivered = self._pubsub.publish(BROADCAST_TOPIC, broadcast)
        logger.info("broadcast_created", broadcast_id=broadcast.id, subscribers=delivered)
        return broadcast

    def list_for(self, principal: Principal | None, limit: int = 50) -> list[Broadcast]:
        """Recent broadcasts the caller may see; anonymous callers see ``ALL`` only."""
        return [b for b in self._store.list_broadcasts(limit) if self.visible_to(principal, b)]

    def visible_to(self, principal: Principal | None, broadcast: Broadcast) -> bool:
        allowed = _AUDIENCES_BY_ROLE[principal.role] if principal else {Audience.ALL}
        return broadcast.audience in allowed
