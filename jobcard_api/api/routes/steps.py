from __future__ import annotations

from fastapi import APIRouter, Depends

from jobcard_api.core.deps import get_catalog
from jobcard_api.schemas.production import StepCatalogRead, StepRead
from jobcard_api.workflow.steps import StepCatalog

router = APIRouter(prefix="/steps", tags=["Steps"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=StepCatalogRead,
    summary="List pipeline steps",
    description="Ordered step catalog with the QA gate and final step ids.",
)
async def list_steps(catalog: StepCatalog = Depends(get_catalog)) -> StepCatalogRead:
    return StepCatalogRead(
        version=catalog.version,
        qa_gate_step=catalog.qa_gate_step,
        final_step=catalog.final_step,
        steps=[StepRead.model_validate(s.model_dump()) for s in catalog.list_steps()],
    )
