from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from jobcard_api.services.realtime import broadcast_manager

logger = logging.getLogger(__name__)

router = APIRouter()

# Close code sent when plan_id is not a UUID.
INVALID_PLAN_ID = 4400


# PUBLIC_INTERFACE
@router.websocket("/ws/production")
async def production_events(websocket: WebSocket) -> None:
    """
    Push workflow events as WsEnvelope JSON. With ?plan_id=<uuid> only that
    plan's events are sent. Incoming text other than 'ping' is ignored.
    """
    await websocket.accept()
    raw_plan_id = websocket.query_params.get("plan_id")
    topic = broadcast_manager.PRODUCTION_TOPIC
    if raw_plan_id:
        try:
            topic = broadcast_manager.plan_topic(UUID(raw_plan_id))
        except ValueError:
            await websocket.close(code=INVALID_PLAN_ID)
            return

    await broadcast_manager.connect(topic, websocket)
    try:
        async for text in websocket.iter_text():
            if text.strip().lower() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Event stream on %s failed", topic)
        await websocket.close()
    finally:
        await broadcast_manager.disconnect(topic, websocket)
