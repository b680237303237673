from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from jobcard_api.core.deps import (
    get_actor_id,
    get_job_card_service,
    get_orchestrator,
    get_transition_service,
)
from jobcard_api.schemas.production import (
    AdvanceRequest,
    DwellTimeRead,
    HoldRequest,
    JobCardRead,
    JobCardUpdate,
    StepDwellStat,
    StepTransitionRead,
)
from jobcard_api.services.job_cards import JobCardService
from jobcard_api.services.orchestration import ProductionOrchestrator
from jobcard_api.services.transitions import TransitionLogService
from jobcard_api.workflow.state import JobCardStatus

router = APIRouter(tags=["Job Cards"])


# PUBLIC_INTERFACE
@router.get(
    "/job-cards",
    response_model=List[JobCardRead],
    summary="List job cards",
    description="Filter by plan, status or current step; urgent cards come first.",
)
async def list_job_cards(
    svc: JobCardService = Depends(get_job_card_service),
    plan_id: Optional[UUID] = Query(None, description="Filter by plan"),
    status: Optional[JobCardStatus] = Query(None, description="Filter by status"),
    step: Optional[int] = Query(None, ge=1, description="Filter by current step"),
    urgent: Optional[bool] = Query(None, description="Filter by urgent flag"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[JobCardRead]:
    rows = await svc.list_job_cards(
        plan_id=plan_id, status=status, step=step, urgent=urgent, limit=limit, offset=offset
    )
    return [JobCardRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/job-cards/{job_card_id}",
    response_model=JobCardRead,
    summary="Get job card",
)
async def get_job_card(
    job_card_id: UUID = Path(...),
    svc: JobCardService = Depends(get_job_card_service),
) -> JobCardRead:
    return JobCardRead.model_validate(await svc.get_job_card(job_card_id))


# PUBLIC_INTERFACE
@router.patch(
    "/job-cards/{job_card_id}",
    response_model=JobCardRead,
    summary="Update job card",
    description="Override the urgent flag inherited from the plan.",
)
async def update_job_card(
    payload: JobCardUpdate,
    job_card_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: JobCardService = Depends(get_job_card_service),
) -> JobCardRead:
    return JobCardRead.model_validate(await svc.set_urgent(job_card_id, payload.urgent, actor_id))


# PUBLIC_INTERFACE
@router.post(
    "/job-cards/{job_card_id}/advance",
    response_model=JobCardRead,
    summary="Advance job card",
    description=(
        "Move the card forward to target_step. Send expected_step (the step you last saw) "
        "to fail with ConcurrentModificationError instead of racing another operator."
    ),
)
async def advance_job_card(
    payload: AdvanceRequest,
    job_card_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    orchestrator: ProductionOrchestrator = Depends(get_orchestrator),
) -> JobCardRead:
    card = await orchestrator.advance_step(
        job_card_id, payload.target_step, actor_id, payload.notes, expected_step=payload.expected_step
    )
    return JobCardRead.model_validate(card)


# PUBLIC_INTERFACE
@router.post(
    "/job-cards/{job_card_id}/hold",
    response_model=JobCardRead,
    summary="Hold job card",
)
async def hold_job_card(
    payload: HoldRequest,
    job_card_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: JobCardService = Depends(get_job_card_service),
) -> JobCardRead:
    return JobCardRead.model_validate(await svc.hold(job_card_id, actor_id, payload.reason))


# PUBLIC_INTERFACE
@router.post(
    "/job-cards/{job_card_id}/release",
    response_model=JobCardRead,
    summary="Release job card",
)
async def release_job_card(
    job_card_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: JobCardService = Depends(get_job_card_service),
) -> JobCardRead:
    return JobCardRead.model_validate(await svc.release(job_card_id, actor_id))


# PUBLIC_INTERFACE
@router.get(
    "/job-cards/{job_card_id}/transitions",
    response_model=List[StepTransitionRead],
    summary="Job card transition history",
    description="Step transitions oldest first, each with the time since the previous one.",
)
async def list_transitions(
    job_card_id: UUID = Path(...),
    svc: TransitionLogService = Depends(get_transition_service),
) -> List[StepTransitionRead]:
    rows = await svc.history(job_card_id)
    return [StepTransitionRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/job-cards/{job_card_id}/dwell/{step_id}",
    response_model=DwellTimeRead,
    summary="Dwell time in a step",
    description="Seconds between entering and leaving the step; null until the card has left it.",
)
async def get_dwell_time(
    job_card_id: UUID = Path(...),
    step_id: int = Path(...),
    svc: TransitionLogService = Depends(get_transition_service),
) -> DwellTimeRead:
    seconds = await svc.dwell_time(job_card_id, step_id)
    return DwellTimeRead(job_card_id=job_card_id, step_id=step_id, seconds=seconds)


# PUBLIC_INTERFACE
@router.get(
    "/analytics/step-dwell",
    response_model=List[StepDwellStat],
    summary="Step dwell summary",
    description="Per-step pass count and average/max dwell seconds, optionally for one plan.",
)
async def step_dwell_summary(
    plan_id: Optional[UUID] = Query(None, description="Restrict to one plan"),
    svc: TransitionLogService = Depends(get_transition_service),
) -> List[StepDwellStat]:
    return await svc.step_dwell_summary(plan_id)
