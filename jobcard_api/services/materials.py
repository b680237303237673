from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from jobcard_api.db.models.materials import MaterialRequest
from jobcard_api.repositories.materials import MaterialRequestRepository
from jobcard_api.repositories.production import JobCardRepository, PlanRepository
from jobcard_api.schemas.materials import MaterialRequestRead
from jobcard_api.services.base import BaseService
from jobcard_api.workflow.errors import (
    JobCardNotFoundError,
    MaterialRequestNotFoundError,
    OverFulfillmentError,
    PlanNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class MaterialLedgerService(BaseService):
    """
    Requested vs. sent source material per plan (optionally per job card).

    The ledger never blocks step progression itself; the material gate in the
    orchestration layer reads is_material_available().
    """

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.repo = MaterialRequestRepository(session)
        self.plans = PlanRepository(session)
        self.cards = JobCardRepository(session)

    async def _new_request(
        self,
        plan_id: UUID,
        requested_quantity: int,
        actor_id: str,
        *,
        job_card_id: Optional[UUID] = None,
        note: Optional[str] = None,
    ) -> MaterialRequest:
        """Add a request to the current transaction without committing."""
        if requested_quantity <= 0:
            raise ValidationError(
                "Requested quantity must be positive", requested_quantity=requested_quantity
            )
        now = self.clock.now()
        request = MaterialRequest(
            plan_id=plan_id,
            job_card_id=job_card_id,
            requested_quantity=requested_quantity,
            sent_quantity=0,
            note=note,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        await self.repo.add(request)
        await self.repo.flush()
        return request

    # PUBLIC_INTERFACE
    async def request_material(
        self,
        plan_id: UUID,
        requested_quantity: int,
        actor_id: str,
        *,
        job_card_id: Optional[UUID] = None,
        note: Optional[str] = None,
    ) -> MaterialRequest:
        """Open a material request against a plan, optionally scoped to one job card."""
        async with self.unit_of_work("request_material", entity_type="ProductionPlan", entity_id=plan_id):
            plan = await self.plans.get_plan(plan_id)
            if plan is None:
                raise PlanNotFoundError(plan_id)
            if job_card_id is not None:
                card = await self.cards.get_job_card(job_card_id)
                if card is None:
                    raise JobCardNotFoundError(job_card_id)
                if card.plan_id != plan_id:
                    raise ValidationError(
                        f"Job card {job_card_id} does not belong to plan {plan_id}",
                        job_card_id=job_card_id,
                        plan_id=plan_id,
                    )
            request = await self._new_request(
                plan_id, requested_quantity, actor_id, job_card_id=job_card_id, note=note
            )
            self.emit("MaterialRequested", MaterialRequestRead.model_validate(request), plan_id=plan_id, actor_id=actor_id)
        logger.info(
            "Material requested: request=%s plan=%s card=%s qty=%d",
            request.id, plan_id, job_card_id, requested_quantity,
        )
        return request

    # PUBLIC_INTERFACE
    async def record_fulfillment(
        self, request_id: UUID, sent_quantity: int, actor_id: Optional[str] = None
    ) -> MaterialRequest:
        """
        Add a shipment of sent_quantity units to the request.

        Shipments are additive. The request becomes fulfilled (and fulfilled_at
        is stamped) once the sent total reaches the requested quantity.

        Raises:
            ValidationError: sent_quantity is not positive.
            OverFulfillmentError: the new total would exceed requested_quantity.
        """
        async with self.unit_of_work("record_fulfillment", entity_type="MaterialRequest", entity_id=request_id):
            request = await self.repo.get_request(request_id, for_update=True)
            if request is None:
                raise MaterialRequestNotFoundError(request_id)
            if sent_quantity <= 0:
                raise ValidationError(
                    "Sent quantity must be positive; fulfillment never decreases",
                    request_id=request_id,
                    sent_quantity=sent_quantity,
                )
            if request.sent_quantity + sent_quantity > request.requested_quantity:
                raise OverFulfillmentError(
                    request_id, request.requested_quantity, request.sent_quantity, sent_quantity
                )
            now = self.clock.now()
            request.sent_quantity += sent_quantity
            request.updated_at = now
            if request.sent_quantity >= request.requested_quantity and request.fulfilled_at is None:
                request.fulfilled_at = now
            await self.repo.flush()
            self.emit(
                "MaterialFulfilled",
                MaterialRequestRead.model_validate(request),
                plan_id=request.plan_id,
                actor_id=actor_id,
            )
        logger.info(
            "Material sent: request=%s +%d (%d/%d)",
            request_id, sent_quantity, request.sent_quantity, request.requested_quantity,
        )
        return request

    # PUBLIC_INTERFACE
    async def get_request(self, request_id: UUID) -> MaterialRequest:
        request = await self.repo.get_request(request_id)
        if request is None:
            raise MaterialRequestNotFoundError(request_id)
        return request

    # PUBLIC_INTERFACE
    async def list_requests(
        self,
        *,
        plan_id: Optional[UUID] = None,
        job_card_id: Optional[UUID] = None,
        fulfilled: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[MaterialRequest]:
        return await self.repo.list_requests(
            plan_id=plan_id, job_card_id=job_card_id, fulfilled=fulfilled, limit=limit, offset=offset
        )

    async def open_requests(self, plan_id: UUID, job_card_id: Optional[UUID] = None) -> List[MaterialRequest]:
        return await self.repo.open_requests_for(plan_id, job_card_id)

    # PUBLIC_INTERFACE
    async def is_material_available(self, plan_id: UUID, job_card_id: Optional[UUID] = None) -> bool:
        """True when no plan-wide (or card-scoped) request is still waiting on material."""
        return not await self.open_requests(plan_id, job_card_id)
