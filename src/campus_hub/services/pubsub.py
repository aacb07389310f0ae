"""In-process publish/subscribe bus feeding GraphQL subscriptions.

Each subscriber gets its own bounded queue, so a slow socket never blocks
publishers. Payloads for one topic reach a subscriber in publish order.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

AVAILABILITY_TOPIC = "availability"
BROADCAST_TOPIC = "broadcasts"
APPOINTMENT_TOPIC = "appointments"
NOTIFICATION_TOPIC = "notifications"


class PubSub:
    """Fan-out of published payloads to every current subscriber of a topic."""

    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        self._queues: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def publish(self, topic: str, payload: Any) -> int:
        """Deliver ``payload`` to all subscribers of ``topic``.

        Returns:
            Number of subscribers the payload was queued for
        """
        queues = self._queues.get(topic, ())
        for queue in queues:
            if queue.full():
                # Drop the oldest payload rather than stall the publisher.
                queue.get_nowait()
                logger.warning("pubsub_queue_overflow", topic=topic)
            queue.put_nowait(payload)
        return len(queues)

    async def subscribe(self, topic: str) -> AsyncIterator[Any]:
        """Yield payloads published on ``topic`` until the consumer stops."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._queues[topic].add(queue)
        logger.debug("pubsub_subscribed", topic=topic)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues[topic].discard(queue)
            if not self._queues[topic]:
                del self._queues[topic]
            logger.debug("pubsub_unsubscribed", topic=topic)

    def subscriber_count(self, topic: str) -> int:
        return len(self._queues.get(topic, ()))
