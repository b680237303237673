from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from jobcard_api.core.deps import get_actor_id, get_job_card_service, get_material_service, get_plan_service
from jobcard_api.schemas.materials import MaterialRequestCreate, MaterialRequestRead
from jobcard_api.schemas.production import (
    JobCardCreate,
    JobCardRead,
    PlanCreate,
    PlanRead,
    PlanSummaryRead,
    PlanUpdate,
)
from jobcard_api.services.job_cards import JobCardService
from jobcard_api.services.materials import MaterialLedgerService
from jobcard_api.services.plans import PlanService

router = APIRouter(prefix="/plans", tags=["Plans"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=PlanRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create production plan",
    description="Create a conversion plan; the initial material request is issued alongside it.",
)
async def create_plan(
    payload: PlanCreate,
    actor_id: str = Depends(get_actor_id),
    svc: PlanService = Depends(get_plan_service),
) -> PlanRead:
    plan = await svc.create_plan(
        payload.source_spec_id,
        payload.target_spec_id,
        payload.total_quantity,
        actor_id,
        urgent=payload.urgent,
        note=payload.note,
        initial_material_quantity=payload.initial_material_quantity,
    )
    return PlanRead.model_validate(plan)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[PlanRead],
    summary="List production plans",
    description="List plans, urgent first, then newest first.",
)
async def list_plans(
    svc: PlanService = Depends(get_plan_service),
    urgent: Optional[bool] = Query(None, description="Filter by urgent flag"),
    created_by: Optional[str] = Query(None, description="Filter by creator"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[PlanRead]:
    rows = await svc.list_plans(urgent=urgent, created_by=created_by, limit=limit, offset=offset)
    return [PlanRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/{plan_id}",
    response_model=PlanRead,
    summary="Get production plan",
)
async def get_plan(
    plan_id: UUID = Path(...),
    svc: PlanService = Depends(get_plan_service),
) -> PlanRead:
    return PlanRead.model_validate(await svc.get_plan(plan_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{plan_id}",
    response_model=PlanRead,
    summary="Update production plan",
    description="Only the urgent flag and the note are mutable.",
)
async def update_plan(
    payload: PlanUpdate,
    plan_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: PlanService = Depends(get_plan_service),
) -> PlanRead:
    plan = await svc.update_plan(plan_id, actor_id, urgent=payload.urgent, note=payload.note)
    return PlanRead.model_validate(plan)


# PUBLIC_INTERFACE
@router.get(
    "/{plan_id}/summary",
    response_model=PlanSummaryRead,
    summary="Plan progress",
    description="Derived plan figures recomputed from its job cards and rejections.",
)
async def get_plan_summary(
    plan_id: UUID = Path(...),
    svc: PlanService = Depends(get_plan_service),
) -> PlanSummaryRead:
    summary = await svc.summary(plan_id)
    return PlanSummaryRead(plan=PlanRead.model_validate(summary.plan), progress=summary.progress)


# PUBLIC_INTERFACE
@router.post(
    "/{plan_id}/job-cards",
    response_model=JobCardRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create job card",
    description="Create a job card at step 1 against the plan's remaining capacity.",
)
async def create_job_card(
    payload: JobCardCreate,
    plan_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: JobCardService = Depends(get_job_card_service),
) -> JobCardRead:
    card = await svc.create_job_card(
        plan_id,
        payload.quantity,
        actor_id,
        urgent=payload.urgent,
        notes=payload.notes,
        auto_material_request=payload.auto_material_request,
    )
    return JobCardRead.model_validate(card)


# PUBLIC_INTERFACE
@router.get(
    "/{plan_id}/job-cards",
    response_model=List[JobCardRead],
    summary="List plan job cards",
)
async def list_plan_job_cards(
    plan_id: UUID = Path(...),
    svc: JobCardService = Depends(get_job_card_service),
) -> List[JobCardRead]:
    rows = await svc.list_job_cards_for_plan(plan_id)
    return [JobCardRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/{plan_id}/material-requests",
    response_model=MaterialRequestRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request material",
    description="Open a material request for the plan, optionally scoped to one of its job cards.",
)
async def request_material(
    payload: MaterialRequestCreate,
    plan_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: MaterialLedgerService = Depends(get_material_service),
) -> MaterialRequestRead:
    request = await svc.request_material(
        plan_id, payload.requested_quantity, actor_id, job_card_id=payload.job_card_id, note=payload.note
    )
    return MaterialRequestRead.model_validate(request)
