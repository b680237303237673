from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from jobcard_api.db.models.materials import MaterialRequest
from .base import BaseRepository


class MaterialRequestRepository(BaseRepository):
    """Repository for the material request ledger."""

    async def get_request(self, request_id: UUID, *, for_update: bool = False) -> Optional[MaterialRequest]:
        return await self.get_by_id(MaterialRequest, request_id, for_update=for_update)

    async def list_requests(
        self,
        *,
        plan_id: Optional[UUID],
        job_card_id: Optional[UUID],
        fulfilled: Optional[bool],
        limit: int,
        offset: int,
    ) -> List[MaterialRequest]:
        stmt = select(MaterialRequest)
        if plan_id:
            stmt = stmt.where(MaterialRequest.plan_id == plan_id)
        if job_card_id:
            stmt = stmt.where(MaterialRequest.job_card_id == job_card_id)
        if fulfilled is True:
            stmt = stmt.where(MaterialRequest.is_fulfilled)
        elif fulfilled is False:
            stmt = stmt.where(~MaterialRequest.is_fulfilled)
        stmt = stmt.order_by(MaterialRequest.created_at.asc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def open_requests_for(self, plan_id: UUID, job_card_id: Optional[UUID]) -> List[MaterialRequest]:
        """
        Unfulfilled requests that gate a job card: plan-wide ones, plus the
        ones scoped to this card.
        """
        scope = MaterialRequest.job_card_id.is_(None)
        if job_card_id is not None:
            scope = or_(scope, MaterialRequest.job_card_id == job_card_id)
        stmt = (
            select(MaterialRequest)
            .where(MaterialRequest.plan_id == plan_id, scope, ~MaterialRequest.is_fulfilled)
            .order_by(MaterialRequest.created_at.asc())
        )
        res = await self.scalars(stmt)
        return list(res)
