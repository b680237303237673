from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from jobcard_api.workflow.aggregation import PlanProgress
from jobcard_api.workflow.state import JobCardStatus


class StepRead(BaseModel):
    """Pipeline step read model."""
    id: int = Field(..., description="Step id (pipeline position)")
    name: str = Field(..., description="Step name")
    description: str = Field("", description="Step description")
    is_qa_gate: bool = Field(False, description="True for the QA gate step")

    class Config:
        from_attributes = True


class StepCatalogRead(BaseModel):
    """Whole catalog with its version and special steps."""
    version: str = Field(..., description="Catalog version")
    qa_gate_step: int = Field(..., description="Id of the QA gate step")
    final_step: int = Field(..., description="Id of the final step")
    steps: List[StepRead] = Field(default_factory=list)


class PlanCreate(BaseModel):
    """Create production plan payload."""
    source_spec_id: str = Field(..., min_length=1, description="Convert-from spec identifier")
    target_spec_id: str = Field(..., min_length=1, description="Convert-to spec identifier")
    total_quantity: int = Field(..., gt=0, description="Units to produce")
    urgent: bool = Field(False)
    note: Optional[str] = Field(None)
    initial_material_quantity: Optional[int] = Field(
        None, gt=0, description="Initial material request size (defaults to total_quantity)"
    )


class PlanUpdate(BaseModel):
    """Plans are mutable only through their urgent flag and note."""
    urgent: Optional[bool] = Field(None)
    note: Optional[str] = Field(None)


class PlanRead(BaseModel):
    """Production plan read model."""
    id: UUID = Field(..., description="Plan id")
    source_spec_id: str = Field(...)
    target_spec_id: str = Field(...)
    total_quantity: int = Field(...)
    urgent: bool = Field(False)
    note: Optional[str] = Field(None)
    created_by: str = Field(...)
    created_at: datetime = Field(..., description="Created at")
    updated_at: datetime = Field(..., description="Updated at")

    class Config:
        from_attributes = True


class PlanSummaryRead(BaseModel):
    """Plan with its derived progress figures."""
    plan: PlanRead
    progress: PlanProgress


class JobCardCreate(BaseModel):
    """Create job card payload."""
    quantity: int = Field(..., gt=0, description="Units on the card (immutable)")
    urgent: Optional[bool] = Field(None, description="Defaults to the plan's urgent flag")
    notes: Optional[str] = Field(None)
    auto_material_request: bool = Field(
        False, description="Also request material for this card's quantity"
    )


class JobCardUpdate(BaseModel):
    """Job card fields editable outside the state machine."""
    urgent: bool = Field(...)


class AdvanceRequest(BaseModel):
    """Move a job card forward."""
    target_step: int = Field(..., description="Step to move to; must be after the current one")
    expected_step: Optional[int] = Field(
        None, description="Caller's last-known current step; mismatch fails with ConcurrentModificationError"
    )
    notes: Optional[str] = Field(None)


class HoldRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Why the card is held")


class JobCardRead(BaseModel):
    """Job card read model."""
    id: UUID = Field(..., description="Job card id")
    plan_id: UUID = Field(...)
    quantity: int = Field(...)
    current_step: int = Field(...)
    status: JobCardStatus = Field(...)
    accepted_quantity: Optional[int] = Field(None)
    rejected_quantity: Optional[int] = Field(None)
    urgent: bool = Field(False)
    notes: Optional[str] = Field(None)
    hold_reason: Optional[str] = Field(None)
    created_by: str = Field(...)
    parent_job_card_id: Optional[UUID] = Field(None, description="Card this one reworks")
    rework_of_rejection_id: Optional[UUID] = Field(None)
    version: int = Field(..., description="Optimistic lock counter")
    created_at: datetime = Field(..., description="Created at")
    updated_at: datetime = Field(..., description="Updated at")

    class Config:
        from_attributes = True


class StepTransitionRead(BaseModel):
    """Transition log entry."""
    id: UUID = Field(...)
    job_card_id: UUID = Field(...)
    sequence: int = Field(..., description="1-based position in the card's log")
    from_step: Optional[int] = Field(None)
    to_step: int = Field(...)
    at: datetime = Field(..., description="When the card entered to_step")
    actor_id: str = Field(...)
    notes: Optional[str] = Field(None)
    duration_seconds: Optional[float] = Field(None, description="Time since the previous transition")

    class Config:
        from_attributes = True


class DwellTimeRead(BaseModel):
    job_card_id: UUID
    step_id: int
    seconds: Optional[float] = Field(None, description="None until the card has left the step")


class StepDwellStat(BaseModel):
    """Per-step dwell statistics across completed passes."""
    step_id: int
    step_name: str
    passes: int = Field(0, description="Number of times a card entered and left the step")
    average_seconds: Optional[float] = Field(None)
    max_seconds: Optional[float] = Field(None)
