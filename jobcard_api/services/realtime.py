from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Set
from uuid import UUID

from starlette.websockets import WebSocket, WebSocketState

from jobcard_api.schemas.realtime import DomainEvent, WsEnvelope

logger = logging.getLogger(__name__)


class BroadcastManager:
    """
    In-process fan-out of workflow events to WebSocket clients.

    Topics:
      - production      every event
      - plan:{plan_id}  events belonging to one production plan

    Sockets that are closed or fail to receive are dropped from their topic.
    """

    PRODUCTION_TOPIC = "production"

    def __init__(self) -> None:
        self._topics: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    def plan_topic(self, plan_id: UUID | str) -> str:
        return f"plan:{plan_id}"

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    # PUBLIC_INTERFACE
    async def connect(self, topic: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._topics[topic].add(websocket)
        logger.info("Subscriber joined %s (%d now)", topic, self.subscriber_count(topic))

    # PUBLIC_INTERFACE
    async def disconnect(self, topic: str, websocket: WebSocket) -> None:
        async with self._lock:
            subscribers = self._topics.get(topic)
            if subscribers is None:
                return
            subscribers.discard(websocket)
            if not subscribers:
                del self._topics[topic]
        logger.info("Subscriber left %s (%d now)", topic, self.subscriber_count(topic))

    @staticmethod
    def _is_open(websocket: WebSocket) -> bool:
        return WebSocketState.DISCONNECTED not in (websocket.application_state, websocket.client_state)

    # PUBLIC_INTERFACE
    async def broadcast(self, topic: str, message: dict) -> None:
        """Send message to every open subscriber of topic."""
        async with self._lock:
            subscribers = list(self._topics.get(topic, ()))
        dead: List[WebSocket] = []
        for websocket in subscribers:
            if not self._is_open(websocket):
                dead.append(websocket)
                continue
            try:
                await websocket.send_json(message)
            except Exception:
                logger.warning("Dropping subscriber on %s after a failed send", topic, exc_info=True)
                dead.append(websocket)
        for websocket in dead:
            await self.disconnect(topic, websocket)

    # PUBLIC_INTERFACE
    async def publish_domain_event(self, event: DomainEvent) -> None:
        """EventPublisher subscriber: wrap the event in a WsEnvelope and fan it out."""
        channel = str(event.plan_id) if event.plan_id else None
        envelope = WsEnvelope(type=event.type, payload=event.model_dump(mode="json"), channel=channel)
        message = envelope.model_dump(mode="json")
        await self.broadcast(self.PRODUCTION_TOPIC, message)
        if channel:
            await self.broadcast(self.plan_topic(channel), message)


broadcast_manager = BroadcastManager()
