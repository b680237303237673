from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from jobcard_api.schemas.common import MessageResponse

router = APIRouter()

EVENT_TYPES = [
    "PlanCreated",
    "PlanUpdated",
    "JobCardCreated",
    "JobCardAdvanced",
    "JobCardHeld",
    "JobCardReleased",
    "JobCardUpdated",
    "InspectionSubmitted",
    "RejectionResolved",
    "MaterialRequested",
    "MaterialFulfilled",
]


# PUBLIC_INTERFACE
@router.get("/health", response_model=MessageResponse, summary="Liveness probe", tags=["Health"])
def health_check() -> MessageResponse:
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@router.get(
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="Event stream details",
    description="How to subscribe to workflow events; WebSocket routes do not appear in OpenAPI.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    return {
        "path": "/ws/production",
        "query": {"plan_id": "optional UUID; restricts the stream to one production plan"},
        "message": {
            "type": "event type, one of event_types",
            "payload": "DomainEvent: type, entity (full updated record), plan_id, actor_id, at",
            "at": "ISO-8601 send time",
            "channel": "plan id, when the event belongs to a plan",
        },
        "event_types": EVENT_TYPES,
        "keepalive": "send 'ping', the server answers 'pong'",
    }
