from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from jobcard_api.db.models.production import JobCard, StepTransition
from jobcard_api.repositories.production import JobCardRepository, TransitionRepository
from jobcard_api.schemas.production import StepDwellStat
from jobcard_api.services.base import BaseService
from jobcard_api.workflow.errors import JobCardNotFoundError

logger = logging.getLogger(__name__)


class TransitionLogService(BaseService):
    """
    Append-only step transition ledger.

    append() is only called by the job card service inside its own unit of
    work, so the log entry and the card's current_step land together.
    """

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.repo = TransitionRepository(session)
        self.cards = JobCardRepository(session)

    async def append(
        self,
        card: JobCard,
        *,
        to_step: int,
        actor_id: str,
        notes: Optional[str] = None,
    ) -> StepTransition:
        """
        Record card entering to_step. The previous entry's to_step becomes
        from_step so the log has no gaps.
        """
        self.catalog.require(to_step)
        previous = await self.repo.latest(card.id)
        now = self.clock.now()
        transition = StepTransition(
            job_card_id=card.id,
            sequence=(previous.sequence + 1) if previous else 1,
            from_step=previous.to_step if previous else None,
            to_step=to_step,
            at=now,
            actor_id=actor_id,
            notes=notes,
            duration_seconds=(now - previous.at).total_seconds() if previous else None,
        )
        await self.repo.add(transition)
        return transition

    async def _require_card(self, job_card_id: UUID) -> JobCard:
        card = await self.cards.get_job_card(job_card_id)
        if card is None:
            raise JobCardNotFoundError(job_card_id)
        return card

    # PUBLIC_INTERFACE
    async def history(self, job_card_id: UUID) -> List[StepTransition]:
        """Transitions of a job card, oldest first."""
        await self._require_card(job_card_id)
        return await self.repo.history(job_card_id)

    # PUBLIC_INTERFACE
    async def dwell_time(self, job_card_id: UUID, step_id: int) -> Optional[float]:
        """
        Seconds the card spent in step_id: from the transition entering it to
        the one leaving it. None if the card never entered or has not left.
        """
        self.catalog.require(step_id)
        log = await self.history(job_card_id)
        for entered, left in zip(log, log[1:]):
            if entered.to_step == step_id:
                return (left.at - entered.at).total_seconds()
        return None

    # PUBLIC_INTERFACE
    async def step_dwell_summary(self, plan_id: Optional[UUID] = None) -> List[StepDwellStat]:
        """
        Per-step pass count and average/max dwell seconds across finished passes.

        A pass is finished once the card has moved on from the step.
        """
        if plan_id is not None:
            card_ids = [c.id for c in await self.cards.list_for_plan(plan_id)]
            transitions = await self.repo.list_for_cards(card_ids)
        else:
            transitions = await self.repo.list_all()

        by_card: Dict[UUID, List[StepTransition]] = defaultdict(list)
        for t in transitions:
            by_card[t.job_card_id].append(t)

        samples: Dict[int, List[float]] = defaultdict(list)
        for log in by_card.values():
            log.sort(key=lambda t: t.sequence)
            for entered, left in zip(log, log[1:]):
                samples[entered.to_step].append((left.at - entered.at).total_seconds())

        stats: List[StepDwellStat] = []
        for step in self.catalog:
            values = samples.get(step.id, [])
            stats.append(
                StepDwellStat(
                    step_id=step.id,
                    step_name=step.name,
                    passes=len(values),
                    average_seconds=round(sum(values) / len(values), 3) if values else None,
                    max_seconds=max(values) if values else None,
                )
            )
        return stats
