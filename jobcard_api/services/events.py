from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, List

from jobcard_api.schemas.realtime import DomainEvent
from jobcard_api.services.realtime import broadcast_manager

logger = logging.getLogger(__name__)

Subscriber = Callable[[DomainEvent], Awaitable[None]]


class EventPublisher:
    """
    Fan-out of workflow events to registered subscribers.

    Events are published only after the owning transaction commits. A failing
    subscriber is logged and skipped; it never undoes the committed write.
    """

    def __init__(self, subscribers: Iterable[Subscriber] = ()) -> None:
        self._subscribers: List[Subscriber] = list(subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    # PUBLIC_INTERFACE
    async def publish(self, event: DomainEvent) -> None:
        """Deliver one event to every subscriber."""
        for subscriber in list(self._subscribers):
            try:
                await subscriber(event)
            except Exception:
                logger.exception("Failed to deliver %s event to %r", event.type, subscriber)

    async def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)


class EventRecorder:
    """Subscriber that keeps every event it receives, in order."""

    def __init__(self) -> None:
        self.events: List[DomainEvent] = []

    async def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [e.type for e in self.events]

    def clear(self) -> None:
        self.events.clear()


# Process-wide publisher; WebSocket clients receive every event.
event_publisher = EventPublisher([broadcast_manager.publish_domain_event])
