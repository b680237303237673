from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from jobcard_api.core.deps import get_actor_id, get_qa_service, get_rejection_service
from jobcard_api.schemas.quality import (
    InspectionCreate,
    InspectionResult,
    QAReportRead,
    RejectionRead,
    ResolutionResult,
    ResolveRequest,
)
from jobcard_api.services.quality import QAGateService
from jobcard_api.services.rejections import RejectionService
from jobcard_api.workflow.state import Severity

router = APIRouter(tags=["Quality"])


# PUBLIC_INTERFACE
@router.post(
    "/job-cards/{job_card_id}/inspection",
    response_model=InspectionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Submit QA inspection",
    description=(
        "Record accepted/rejected quantities for a card waiting at the QA gate. "
        "A clean inspection moves the card past the gate; rejected units open a rejection."
    ),
)
async def submit_inspection(
    payload: InspectionCreate,
    job_card_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: QAGateService = Depends(get_qa_service),
) -> InspectionResult:
    inspection = await svc.submit_inspection(
        job_card_id,
        payload.accepted_quantity,
        payload.rejected_quantity,
        payload.quality_score,
        actor_id,
        payload.notes,
        reason=payload.reason,
        severity=payload.severity,
    )
    return inspection.to_result()


# PUBLIC_INTERFACE
@router.get(
    "/job-cards/{job_card_id}/inspection",
    response_model=QAReportRead,
    summary="Get QA report",
)
async def get_inspection(
    job_card_id: UUID = Path(...),
    svc: QAGateService = Depends(get_qa_service),
) -> QAReportRead:
    return QAReportRead.model_validate(await svc.get_report(job_card_id))


# PUBLIC_INTERFACE
@router.get(
    "/rejections",
    response_model=List[RejectionRead],
    summary="List rejections",
    description="List rejections ordered by created_at desc.",
)
async def list_rejections(
    svc: RejectionService = Depends(get_rejection_service),
    plan_id: Optional[UUID] = Query(None, description="Filter by plan"),
    job_card_id: Optional[UUID] = Query(None, description="Filter by job card"),
    resolved: Optional[bool] = Query(None, description="Filter by resolution state"),
    severity: Optional[Severity] = Query(None, description="Filter by severity"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[RejectionRead]:
    rows = await svc.list_rejections(
        plan_id=plan_id, job_card_id=job_card_id, resolved=resolved, severity=severity, limit=limit, offset=offset
    )
    return [RejectionRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/rejections/{rejection_id}",
    response_model=RejectionRead,
    summary="Get rejection",
)
async def get_rejection(
    rejection_id: UUID = Path(...),
    svc: RejectionService = Depends(get_rejection_service),
) -> RejectionRead:
    return RejectionRead.model_validate(await svc.get_rejection(rejection_id))


# PUBLIC_INTERFACE
@router.post(
    "/rejections/{rejection_id}/resolve",
    response_model=ResolutionResult,
    summary="Resolve rejection",
    description="rework | scrap | accept | return. Resolution is terminal; a repeat call fails with AlreadyResolvedError.",
)
async def resolve_rejection(
    payload: ResolveRequest,
    rejection_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: RejectionService = Depends(get_rejection_service),
) -> ResolutionResult:
    resolution = await svc.resolve(rejection_id, payload.resolution_action, actor_id, payload.resolution_notes)
    return resolution.to_result()
