from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from jobcard_api.core.deps import get_actor_id, get_material_service
from jobcard_api.schemas.materials import FulfillmentCreate, MaterialRequestRead
from jobcard_api.services.materials import MaterialLedgerService

router = APIRouter(prefix="/material-requests", tags=["Materials"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[MaterialRequestRead],
    summary="List material requests",
)
async def list_material_requests(
    svc: MaterialLedgerService = Depends(get_material_service),
    plan_id: Optional[UUID] = Query(None, description="Filter by plan"),
    job_card_id: Optional[UUID] = Query(None, description="Filter by job card"),
    fulfilled: Optional[bool] = Query(None, description="Filter by fulfillment"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[MaterialRequestRead]:
    rows = await svc.list_requests(
        plan_id=plan_id, job_card_id=job_card_id, fulfilled=fulfilled, limit=limit, offset=offset
    )
    return [MaterialRequestRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/{request_id}",
    response_model=MaterialRequestRead,
    summary="Get material request",
)
async def get_material_request(
    request_id: UUID = Path(...),
    svc: MaterialLedgerService = Depends(get_material_service),
) -> MaterialRequestRead:
    return MaterialRequestRead.model_validate(await svc.get_request(request_id))


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/fulfillments",
    response_model=MaterialRequestRead,
    summary="Record fulfillment",
    description="Add a shipment; shipments are additive and may not exceed the requested quantity.",
)
async def record_fulfillment(
    payload: FulfillmentCreate,
    request_id: UUID = Path(...),
    actor_id: str = Depends(get_actor_id),
    svc: MaterialLedgerService = Depends(get_material_service),
) -> MaterialRequestRead:
    request = await svc.record_fulfillment(request_id, payload.sent_quantity, actor_id)
    return MaterialRequestRead.model_validate(request)
