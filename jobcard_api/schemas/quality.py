from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from jobcard_api.schemas.production import JobCardRead
from jobcard_api.workflow.state import ResolutionAction, Severity


class InspectionCreate(BaseModel):
    """QA gate inspection payload."""
    accepted_quantity: int = Field(..., ge=0)
    rejected_quantity: int = Field(..., ge=0)
    quality_score: int = Field(..., ge=0, le=100)
    notes: Optional[str] = Field(None)
    reason: Optional[str] = Field(None, description="Rejection reason when rejected_quantity > 0")
    severity: Severity = Field(Severity.MEDIUM, description="Rejection severity")


class QAReportRead(BaseModel):
    """QA report read model."""
    id: UUID = Field(..., description="Report id")
    job_card_id: UUID = Field(...)
    qa_actor_id: str = Field(...)
    inspected_at: datetime = Field(...)
    accepted_quantity: int = Field(...)
    rejected_quantity: int = Field(...)
    quality_score: int = Field(...)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class RejectionRead(BaseModel):
    """Rejection read model."""
    id: UUID = Field(..., description="Rejection id")
    qa_report_id: UUID = Field(...)
    job_card_id: UUID = Field(...)
    plan_id: UUID = Field(...)
    rejected_quantity: int = Field(...)
    reason: Optional[str] = Field(None)
    severity: Severity = Field(...)
    is_resolved: bool = Field(False)
    resolution_action: Optional[ResolutionAction] = Field(None)
    resolution_notes: Optional[str] = Field(None)
    resolved_by: Optional[str] = Field(None)
    resolved_at: Optional[datetime] = Field(None)
    rework_job_card_id: Optional[UUID] = Field(None)
    created_at: datetime = Field(..., description="Created at")

    class Config:
        from_attributes = True


class InspectionResult(BaseModel):
    """Everything a submitted inspection produced."""
    report: QAReportRead
    job_card: JobCardRead
    rejection: Optional[RejectionRead] = None


class ResolveRequest(BaseModel):
    resolution_action: ResolutionAction = Field(...)
    resolution_notes: Optional[str] = Field(None)


class ResolutionResult(BaseModel):
    """Resolved rejection, the original card, and any spawned rework card."""
    rejection: RejectionRead
    job_card: JobCardRead
    rework_job_card: Optional[JobCardRead] = None
