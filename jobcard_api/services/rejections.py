from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from jobcard_api.db.models.production import JobCard
from jobcard_api.db.models.quality import Rejection
from jobcard_api.repositories.production import JobCardRepository
from jobcard_api.repositories.qual import QualityRepository
from jobcard_api.schemas.production import JobCardRead
from jobcard_api.schemas.quality import RejectionRead, ResolutionResult
from jobcard_api.services.base import BaseService
from jobcard_api.services.job_cards import JobCardService
from jobcard_api.workflow.errors import AlreadyResolvedError, JobCardNotFoundError, RejectionNotFoundError
from jobcard_api.workflow.state import JobCardStatus, ResolutionAction, Severity

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """What resolve() changed."""
    rejection: Rejection
    job_card: JobCard
    rework_job_card: Optional[JobCard] = None

    def to_result(self) -> ResolutionResult:
        return ResolutionResult(
            rejection=RejectionRead.model_validate(self.rejection),
            job_card=JobCardRead.model_validate(self.job_card),
            rework_job_card=JobCardRead.model_validate(self.rework_job_card) if self.rework_job_card else None,
        )


class RejectionService(BaseService):
    """
    Resolves quality rejections, once each.

    rework spawns a new card at step 1 for the rejected units; scrap and return
    write them off; accept overrides the inspection and books them as accepted.
    """

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.quality = QualityRepository(session)
        self.cards = JobCardRepository(session)
        self.job_cards = JobCardService(session, **self.share_context())

    # PUBLIC_INTERFACE
    async def resolve(
        self,
        rejection_id: UUID,
        resolution_action: ResolutionAction,
        actor_id: str,
        resolution_notes: Optional[str] = None,
    ) -> Resolution:
        """
        Resolve a rejection. Terminal: a second call fails with AlreadyResolvedError
        and never spawns a second rework card.
        """
        action = ResolutionAction(resolution_action)

        def _duplicate(_exc) -> AlreadyResolvedError:
            return AlreadyResolvedError(rejection_id)

        async with self.unit_of_work(
            "resolve_rejection", entity_type="Rejection", entity_id=rejection_id, on_integrity=_duplicate
        ):
            rejection = await self.quality.get_rejection(rejection_id, for_update=True)
            if rejection is None:
                raise RejectionNotFoundError(rejection_id)
            if rejection.is_resolved:
                raise AlreadyResolvedError(rejection_id)

            card = await self.cards.get_job_card(rejection.job_card_id, for_update=True)
            if card is None:
                raise JobCardNotFoundError(rejection.job_card_id)

            now = self.clock.now()
            rejection.is_resolved = True
            rejection.resolution_action = action.value
            rejection.resolution_notes = resolution_notes
            rejection.resolved_by = actor_id
            rejection.resolved_at = now
            rejection.updated_at = now

            if action == ResolutionAction.ACCEPT:
                card.accepted_quantity = card.quantity
                card.rejected_quantity = 0
            elif not card.accepted_quantity and card.status != JobCardStatus.ON_HOLD.value:
                # nothing left on this card to move past the gate
                card.status = JobCardStatus.REJECTED.value
            card.updated_at = now
            await self.quality.flush()

            rework_card = None
            if action == ResolutionAction.REWORK:
                rework_card = await self.job_cards._create_card(
                    rejection.plan_id,
                    rejection.rejected_quantity,
                    actor_id,
                    urgent=card.urgent,
                    notes=f"Rework of rejection {rejection.id}",
                    parent_job_card_id=card.id,
                    rework_of_rejection_id=rejection.id,
                )
                rejection.rework_job_card_id = rework_card.id
                await self.quality.flush()

            resolution = Resolution(rejection=rejection, job_card=card, rework_job_card=rework_card)
            self.emit("RejectionResolved", resolution.to_result(), plan_id=rejection.plan_id, actor_id=actor_id)
            if rework_card is not None:
                self.emit("JobCardCreated", JobCardRead.model_validate(rework_card), plan_id=rejection.plan_id, actor_id=actor_id)

        logger.info(
            "Rejection resolved: rejection=%s action=%s qty=%d rework_card=%s",
            rejection_id, action.value, rejection.rejected_quantity,
            rework_card.id if rework_card else None,
        )
        return resolution

    # PUBLIC_INTERFACE
    async def get_rejection(self, rejection_id: UUID) -> Rejection:
        rejection = await self.quality.get_rejection(rejection_id)
        if rejection is None:
            raise RejectionNotFoundError(rejection_id)
        return rejection

    # PUBLIC_INTERFACE
    async def list_rejections(
        self,
        *,
        plan_id: Optional[UUID] = None,
        job_card_id: Optional[UUID] = None,
        resolved: Optional[bool] = None,
        severity: Optional[Severity] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Rejection]:
        return await self.quality.list_rejections(
            plan_id=plan_id,
            job_card_id=job_card_id,
            resolved=resolved,
            severity=severity.value if severity else None,
            limit=limit,
            offset=offset,
        )
