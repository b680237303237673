from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MaterialRequestCreate(BaseModel):
    """Request source material for a plan (optionally a single job card)."""
    requested_quantity: int = Field(..., gt=0)
    job_card_id: Optional[UUID] = Field(None)
    note: Optional[str] = Field(None)


class FulfillmentCreate(BaseModel):
    """Additive shipment against a material request."""
    sent_quantity: int = Field(..., gt=0, description="Units sent in this shipment")


class MaterialRequestRead(BaseModel):
    """Material request read model."""
    id: UUID = Field(..., description="Request id")
    plan_id: UUID = Field(...)
    job_card_id: Optional[UUID] = Field(None)
    requested_quantity: int = Field(...)
    sent_quantity: int = Field(...)
    is_fulfilled: bool = Field(..., description="sent_quantity >= requested_quantity")
    note: Optional[str] = Field(None)
    created_by: str = Field(...)
    created_at: datetime = Field(...)
    fulfilled_at: Optional[datetime] = Field(None)

    class Config:
        from_attributes = True
