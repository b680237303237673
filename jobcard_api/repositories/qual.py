from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from jobcard_api.db.models.quality import QAReport, Rejection
from .base import BaseRepository


class QualityRepository(BaseRepository):
    """Repository for QA reports and rejections."""

    async def get_report_for_card(self, job_card_id: UUID) -> Optional[QAReport]:
        stmt = select(QAReport).where(QAReport.job_card_id == job_card_id)
        return await self.scalar_one_or_none(stmt)

    async def get_rejection(self, rejection_id: UUID, *, for_update: bool = False) -> Optional[Rejection]:
        return await self.get_by_id(Rejection, rejection_id, for_update=for_update)

    async def open_rejection_for_card(self, job_card_id: UUID) -> Optional[Rejection]:
        stmt = (
            select(Rejection)
            .where(Rejection.job_card_id == job_card_id, Rejection.is_resolved.is_(False))
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)

    async def list_for_plan(self, plan_id: UUID) -> List[Rejection]:
        stmt = (
            select(Rejection)
            .where(Rejection.plan_id == plan_id)
            .order_by(Rejection.created_at.asc())
            .execution_options(populate_existing=True)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def list_rejections(
        self,
        *,
        plan_id: Optional[UUID],
        job_card_id: Optional[UUID],
        resolved: Optional[bool],
        severity: Optional[str],
        limit: int,
        offset: int,
    ) -> List[Rejection]:
        stmt = select(Rejection)
        if plan_id:
            stmt = stmt.where(Rejection.plan_id == plan_id)
        if job_card_id:
            stmt = stmt.where(Rejection.job_card_id == job_card_id)
        if resolved is not None:
            stmt = stmt.where(Rejection.is_resolved.is_(resolved))
        if severity:
            stmt = stmt.where(Rejection.severity == severity)
        stmt = stmt.order_by(Rejection.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)
