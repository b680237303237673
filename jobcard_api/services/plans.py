from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from jobcard_api.db.models.production import ProductionPlan
from jobcard_api.repositories.production import JobCardRepository, PlanRepository
from jobcard_api.repositories.qual import QualityRepository
from jobcard_api.schemas.materials import MaterialRequestRead
from jobcard_api.schemas.production import PlanRead
from jobcard_api.services.base import BaseService
from jobcard_api.services.materials import MaterialLedgerService
from jobcard_api.workflow import aggregation
from jobcard_api.workflow.aggregation import PlanProgress
from jobcard_api.workflow.errors import PlanNotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class PlanSummary:
    plan: ProductionPlan
    progress: PlanProgress


class PlanService(BaseService):
    """
    Production plans and their derived progress.

    Plan figures are never stored; summary() folds the current job cards and
    rejections on every call.
    """

    def __init__(self, session, *, auto_material_request: bool = True, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.auto_material_request = auto_material_request
        self.plans = PlanRepository(session)
        self.cards = JobCardRepository(session)
        self.quality = QualityRepository(session)
        self.materials = MaterialLedgerService(session, **self.share_context())

    # PUBLIC_INTERFACE
    async def create_plan(
        self,
        source_spec_id: str,
        target_spec_id: str,
        total_quantity: int,
        actor_id: str,
        *,
        urgent: bool = False,
        note: Optional[str] = None,
        initial_material_quantity: Optional[int] = None,
    ) -> ProductionPlan:
        """
        Create a plan and, unless disabled, its initial material request for
        initial_material_quantity (defaults to total_quantity).
        """
        if total_quantity <= 0:
            raise ValidationError("Plan total quantity must be positive", total_quantity=total_quantity)
        if not source_spec_id or not target_spec_id:
            raise ValidationError("Both source and target spec ids are required")

        async with self.unit_of_work("create_plan", entity_type="ProductionPlan"):
            now = self.clock.now()
            plan = ProductionPlan(
                source_spec_id=source_spec_id,
                target_spec_id=target_spec_id,
                total_quantity=total_quantity,
                urgent=urgent,
                note=note,
                created_by=actor_id,
                created_at=now,
                updated_at=now,
            )
            await self.plans.add(plan)
            await self.plans.flush()
            self.emit("PlanCreated", PlanRead.model_validate(plan), plan_id=plan.id, actor_id=actor_id)

            if self.auto_material_request:
                request = await self.materials._new_request(
                    plan.id,
                    initial_material_quantity or total_quantity,
                    actor_id,
                    note=f"Initial material for {source_spec_id} -> {target_spec_id}",
                )
                self.emit("MaterialRequested", MaterialRequestRead.model_validate(request), plan_id=plan.id, actor_id=actor_id)

        logger.info(
            "Plan created: plan=%s %s -> %s qty=%d urgent=%s",
            plan.id, source_spec_id, target_spec_id, total_quantity, urgent,
        )
        return plan

    # PUBLIC_INTERFACE
    async def update_plan(
        self,
        plan_id: UUID,
        actor_id: str,
        *,
        urgent: Optional[bool] = None,
        note: Optional[str] = None,
    ) -> ProductionPlan:
        """Plans change only through their urgent flag and note."""
        async with self.unit_of_work("update_plan", entity_type="ProductionPlan", entity_id=plan_id):
            plan = await self.plans.get_plan(plan_id, for_update=True)
            if plan is None:
                raise PlanNotFoundError(plan_id)
            if urgent is not None:
                plan.urgent = urgent
            if note is not None:
                plan.note = note
            plan.updated_at = self.clock.now()
            await self.plans.flush()
            self.emit("PlanUpdated", PlanRead.model_validate(plan), plan_id=plan.id, actor_id=actor_id)
        logger.info("Plan updated: plan=%s urgent=%s", plan_id, plan.urgent)
        return plan

    # PUBLIC_INTERFACE
    async def get_plan(self, plan_id: UUID) -> ProductionPlan:
        plan = await self.plans.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    # PUBLIC_INTERFACE
    async def list_plans(
        self,
        *,
        urgent: Optional[bool] = None,
        created_by: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ProductionPlan]:
        """Plans, urgent first then newest first."""
        return await self.plans.list_plans(urgent=urgent, created_by=created_by, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def progress(self, plan_id: UUID) -> PlanProgress:
        """Derived figures: completed, in production, rejected, completion flag and friends."""
        plan = await self.get_plan(plan_id)
        cards = await self.cards.list_for_plan(plan_id)
        rejections = await self.quality.list_for_plan(plan_id)
        return aggregation.summarize(plan.total_quantity, cards, rejections)

    # PUBLIC_INTERFACE
    async def summary(self, plan_id: UUID) -> PlanSummary:
        plan = await self.get_plan(plan_id)
        return PlanSummary(plan=plan, progress=await self.progress(plan_id))

    async def completed_quantity(self, plan_id: UUID) -> int:
        return (await self.progress(plan_id)).completed_quantity

    async def in_production_quantity(self, plan_id: UUID) -> int:
        return (await self.progress(plan_id)).in_production_quantity

    async def rejected_quantity(self, plan_id: UUID) -> int:
        return (await self.progress(plan_id)).rejected_quantity

    async def is_completed(self, plan_id: UUID) -> bool:
        return (await self.progress(plan_id)).is_completed
