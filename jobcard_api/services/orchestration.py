from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from jobcard_api.db.models.production import JobCard
from jobcard_api.services.base import BaseService
from jobcard_api.services.job_cards import JobCardService
from jobcard_api.services.materials import MaterialLedgerService
from jobcard_api.workflow.errors import JobCardNotFoundError, MaterialNotFulfilledError

logger = logging.getLogger(__name__)


class ProductionOrchestrator(BaseService):
    """
    Policy layer over the job card store.

    The material ledger does not block anything on its own. Here a card may
    not leave the first step while a plan-wide or card-scoped material request
    is still open, unless the gate is switched off.
    """

    def __init__(self, session, *, enforce_material_gate: bool = True, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.enforce_material_gate = enforce_material_gate
        self.job_cards = JobCardService(session, **self.share_context())
        self.materials = MaterialLedgerService(session, **self.share_context())

    async def check_material_gate(self, card: JobCard, target_step: int) -> None:
        if not self.enforce_material_gate:
            return
        first = self.catalog.first_step
        if card.current_step != first or target_step <= first:
            return
        open_requests = await self.materials.open_requests(card.plan_id, card.id)
        if open_requests:
            logger.warning(
                "Material gate: card=%s blocked at step %d by %d open request(s)",
                card.id, first, len(open_requests),
            )
            raise MaterialNotFulfilledError(card.id, [r.id for r in open_requests])

    # PUBLIC_INTERFACE
    async def advance_step(
        self,
        job_card_id: UUID,
        target_step: int,
        actor_id: str,
        notes: Optional[str] = None,
        *,
        expected_step: Optional[int] = None,
    ) -> JobCard:
        """advance_step with the material gate applied when leaving step 1."""
        card = await self.job_cards.cards.get_job_card(job_card_id, fresh=True)
        if card is None:
            raise JobCardNotFoundError(job_card_id)
        await self.check_material_gate(card, target_step)
        return await self.job_cards.advance_step(
            job_card_id, target_step, actor_id, notes, expected_step=expected_step
        )
