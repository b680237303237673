from __future__ import annotations

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select

from jobcard_api.db.models.production import JobCard, ProductionPlan, StepTransition
from .base import BaseRepository


class PlanRepository(BaseRepository):
    """Repository for production plans."""

    async def get_plan(self, plan_id: UUID, *, for_update: bool = False) -> Optional[ProductionPlan]:
        return await self.get_by_id(ProductionPlan, plan_id, for_update=for_update)

    async def list_plans(
        self, *, urgent: Optional[bool], created_by: Optional[str], limit: int, offset: int
    ) -> List[ProductionPlan]:
        stmt = select(ProductionPlan)
        if urgent is not None:
            stmt = stmt.where(ProductionPlan.urgent.is_(urgent))
        if created_by:
            stmt = stmt.where(ProductionPlan.created_by == created_by)
        stmt = stmt.order_by(ProductionPlan.urgent.desc(), ProductionPlan.created_at.desc())
        stmt = stmt.offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def find_by_note(self, note: str) -> Optional[ProductionPlan]:
        stmt = select(ProductionPlan).where(ProductionPlan.note == note).limit(1)
        return await self.scalar_one_or_none(stmt)


class JobCardRepository(BaseRepository):
    """Repository for job cards."""

    async def get_job_card(
        self, job_card_id: UUID, *, for_update: bool = False, fresh: bool = False
    ) -> Optional[JobCard]:
        return await self.get_by_id(JobCard, job_card_id, for_update=for_update, fresh=fresh)

    async def list_for_plan(self, plan_id: UUID) -> List[JobCard]:
        stmt = (
            select(JobCard)
            .where(JobCard.plan_id == plan_id)
            .order_by(JobCard.created_at.asc(), JobCard.id.asc())
            .execution_options(populate_existing=True)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def list_job_cards(
        self,
        *,
        plan_id: Optional[UUID],
        status: Optional[str],
        step: Optional[int],
        urgent: Optional[bool],
        limit: int,
        offset: int,
    ) -> List[JobCard]:
        stmt = select(JobCard)
        if plan_id:
            stmt = stmt.where(JobCard.plan_id == plan_id)
        if status:
            stmt = stmt.where(JobCard.status == status)
        if step is not None:
            stmt = stmt.where(JobCard.current_step == step)
        if urgent is not None:
            stmt = stmt.where(JobCard.urgent.is_(urgent))
        stmt = stmt.order_by(JobCard.urgent.desc(), JobCard.created_at.asc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)


class TransitionRepository(BaseRepository):
    """Append-only access to the step transition log."""

    async def history(self, job_card_id: UUID) -> List[StepTransition]:
        stmt = (
            select(StepTransition)
            .where(StepTransition.job_card_id == job_card_id)
            .order_by(StepTransition.sequence.asc())
        )
        res = await self.scalars(stmt)
        return list(res)

    async def latest(self, job_card_id: UUID) -> Optional[StepTransition]:
        stmt = (
            select(StepTransition)
            .where(StepTransition.job_card_id == job_card_id)
            .order_by(StepTransition.sequence.desc())
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)

    async def count(self, job_card_id: UUID) -> int:
        res = await self.execute(
            select(func.count(StepTransition.id)).where(StepTransition.job_card_id == job_card_id)
        )
        return int(res.scalar_one())

    async def list_for_cards(self, job_card_ids: Sequence[UUID]) -> List[StepTransition]:
        if not job_card_ids:
            return []
        stmt = (
            select(StepTransition)
            .where(StepTransition.job_card_id.in_(list(job_card_ids)))
            .order_by(StepTransition.job_card_id, StepTransition.sequence.asc())
        )
        res = await self.scalars(stmt)
        return list(res)

    async def list_all(self) -> List[StepTransition]:
        stmt = select(StepTransition).order_by(StepTransition.job_card_id, StepTransition.sequence.asc())
        res = await self.scalars(stmt)
        return list(res)
