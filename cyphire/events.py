"""In-process event bus: one channel per engagement, best-effort fan-out.

Channel membership lives only in memory for the lifetime of the process.
A subscriber that is not connected when an event is published never sees it;
the engagement record and message log are the durable source of truth.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from cyphire.config import settings

logger = logging.getLogger("cyphire.events")


@dataclass
class Event:
    type: str
    channel: str
    data: dict = field(default_factory=dict)

    def payload(self) -> dict:
        return {"type": self.type, **self.data}


def workroom_channel(engagement_id: str) -> str:
    return f"workroom:{engagement_id}"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


class EventBus:
    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        # channel -> {queue: subscriber_id}
        self._channels: dict[str, dict[asyncio.Queue, str]] = defaultdict(dict)

    def new_queue(self) -> asyncio.Queue:
        return asyncio.Queue(maxsize=self._max_queue_size)

    def subscribe(
        self, channel: str, subscriber_id: str, queue: asyncio.Queue | None = None
    ) -> asyncio.Queue:
        """Attach a queue to a channel. A single queue may sit on several channels."""
        if queue is None:
            queue = self.new_queue()
        self._channels[channel][queue] = subscriber_id
        return queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue) -> None:
        members = self._channels.get(channel)
        if members is None:
            return
        members.pop(queue, None)
        if not members:
            del self._channels[channel]

    def unsubscribe_all(self, queue: asyncio.Queue) -> None:
        for channel in [c for c, members in self._channels.items() if queue in members]:
            self.unsubscribe(channel, queue)

    def subscribers(self, channel: str) -> set[str]:
        return set(self._channels.get(channel, {}).values())

    def publish(self, event: Event, exclude: str | None = None) -> int:
        """Deliver to every queue on the event's channel; returns the delivery count."""
        delivered = 0
        for queue, subscriber_id in list(self._channels.get(event.channel, {}).items()):
            if exclude is not None and subscriber_id == exclude:
                continue
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropping %s for %s: queue full", event.type, subscriber_id)
        return delivered


event_bus = EventBus(max_queue_size=settings.realtime_queue_size)
