from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    message: str
    details: Optional[dict] = None


class ErrorInfo(BaseModel):
    type: str = Field(..., description="Error kind, e.g. CapacityExceededError or validation_error")
    message: str
    retryable: bool = Field(False, description="Re-issuing the same call may succeed")
    details: Optional[Any] = Field(None, description="Kind-specific fields or validation issues")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""
    status: int
    error: ErrorInfo
    correlation_id: Optional[str] = None
    actor_id: Optional[str] = Field(None, description="X-Actor-ID of the failed call, when sent")
    path: Optional[str] = None
    method: Optional[str] = None
    timestamp: datetime
