from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WsEnvelope(BaseModel):
    """Envelope for WebSocket messages."""
    type: str = Field(..., description="Message type (e.g., 'JobCardAdvanced').")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Message payload.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp (UTC).")
    channel: Optional[str] = Field(default=None, description="Optional sub-channel (e.g., plan id).")


class DomainEvent(BaseModel):
    """
    Workflow event emitted after a successful commit.

    The entity field holds the full updated record; delivery is up to the
    subscribers.
    """
    type: str = Field(..., description="JobCardAdvanced, InspectionSubmitted, RejectionResolved, ...")
    entity: Dict[str, Any] = Field(default_factory=dict, description="Updated entity as JSON.")
    plan_id: Optional[UUID] = Field(default=None, description="Plan the entity belongs to.")
    actor_id: Optional[str] = Field(default=None, description="Acting user, when known.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Event timestamp (UTC).")
