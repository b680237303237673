from __future__ import annotations

import asyncio
import logging
import weakref
from typing import List, Optional
from uuid import UUID

from jobcard_api.db.models.production import JobCard
from jobcard_api.repositories.production import JobCardRepository, PlanRepository, TransitionRepository
from jobcard_api.repositories.qual import QualityRepository
from jobcard_api.schemas.materials import MaterialRequestRead
from jobcard_api.schemas.production import JobCardRead
from jobcard_api.services.base import BaseService
from jobcard_api.services.materials import MaterialLedgerService
from jobcard_api.services.transitions import TransitionLogService
from jobcard_api.workflow import aggregation
from jobcard_api.workflow.errors import (
    CapacityExceededError,
    ConcurrentModificationError,
    InvalidTransitionError,
    JobCardNotFoundError,
    PlanNotFoundError,
    ValidationError,
)
from jobcard_api.workflow.state import (
    JobCardStatus,
    is_terminal,
    status_after_advance,
    status_for_position,
    validate_advance,
)

logger = logging.getLogger(__name__)

# Capacity checks on one plan run one at a time within this process. The plan
# row lock covers the same race across processes on PostgreSQL.
_capacity_locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()


def plan_capacity_lock(plan_id: UUID) -> asyncio.Lock:
    lock = _capacity_locks.get(plan_id)
    if lock is None:
        lock = _capacity_locks[plan_id] = asyncio.Lock()
    return lock


class JobCardService(BaseService):
    """
    Job card store: creation against plan capacity, forward step moves,
    hold/release, and reads.

    Every write to current_step goes together with one transition log entry
    in the same unit of work.
    """

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.plans = PlanRepository(session)
        self.cards = JobCardRepository(session)
        self.quality = QualityRepository(session)
        self.transition_repo = TransitionRepository(session)
        self.transitions = TransitionLogService(session, **self.share_context())
        self.materials = MaterialLedgerService(session, **self.share_context())

    async def _create_card(
        self,
        plan_id: UUID,
        quantity: int,
        actor_id: str,
        *,
        urgent: Optional[bool] = None,
        notes: Optional[str] = None,
        parent_job_card_id: Optional[UUID] = None,
        rework_of_rejection_id: Optional[UUID] = None,
    ) -> JobCard:
        """
        Capacity-checked creation inside the caller's transaction.

        The plan row is locked and its version bumped, so two creations on one
        plan cannot both commit against the same remaining capacity.
        """
        if quantity <= 0:
            raise ValidationError("Job card quantity must be positive", quantity=quantity)

        plan = await self.plans.get_plan(plan_id, for_update=True)
        if plan is None:
            raise PlanNotFoundError(plan_id)

        existing = await self.cards.list_for_plan(plan_id)
        rejections = await self.quality.list_for_plan(plan_id)
        committed = aggregation.committed_quantity(existing, rejections)
        if committed + quantity > plan.total_quantity:
            raise CapacityExceededError(plan_id, quantity, committed, plan.total_quantity)

        now = self.clock.now()
        card = JobCard(
            plan_id=plan_id,
            quantity=quantity,
            current_step=self.catalog.first_step,
            status=JobCardStatus.PENDING.value,
            urgent=plan.urgent if urgent is None else urgent,
            notes=notes,
            created_by=actor_id,
            parent_job_card_id=parent_job_card_id,
            rework_of_rejection_id=rework_of_rejection_id,
            created_at=now,
            updated_at=now,
        )
        plan.updated_at = now
        await self.cards.add(card)
        await self.cards.flush()
        await self.transitions.append(card, to_step=self.catalog.first_step, actor_id=actor_id, notes=notes)
        await self.cards.flush()
        logger.info(
            "Job card created: card=%s plan=%s qty=%d committed=%d/%d",
            card.id, plan_id, quantity, committed + quantity, plan.total_quantity,
        )
        return card

    # PUBLIC_INTERFACE
    async def create_job_card(
        self,
        plan_id: UUID,
        quantity: int,
        actor_id: str,
        *,
        urgent: Optional[bool] = None,
        notes: Optional[str] = None,
        auto_material_request: bool = False,
    ) -> JobCard:
        """
        Create a job card at step 1 with status pending.

        Raises:
            CapacityExceededError: quantity plus what the plan already committed
                exceeds the plan's total_quantity.
            PlanNotFoundError: unknown plan.
        """
        async with plan_capacity_lock(plan_id):
            async with self.unit_of_work("create_job_card", entity_type="ProductionPlan", entity_id=plan_id):
                card = await self._create_card(plan_id, quantity, actor_id, urgent=urgent, notes=notes)
                self.emit("JobCardCreated", JobCardRead.model_validate(card), plan_id=plan_id, actor_id=actor_id)
                if auto_material_request:
                    request = await self.materials._new_request(
                        plan_id, quantity, actor_id, job_card_id=card.id, note=f"Material for job card {card.id}"
                    )
                    self.emit(
                        "MaterialRequested",
                        MaterialRequestRead.model_validate(request),
                        plan_id=plan_id,
                        actor_id=actor_id,
                    )
        return card

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
        """
        Move a job card forward to target_step and log the transition.

        expected_step is the caller's last-known current step; if the card has
        moved since, the call fails instead of racing the other writer.

        Raises:
            UnknownStepError: target_step is not in the catalog.
            InvalidTransitionError: backward move, QA gate skip, on-hold or terminal card.
            ConcurrentModificationError: expected_step mismatch or a lost version race.
        """
        async with self.unit_of_work("advance_step", entity_type="JobCard", entity_id=job_card_id):
            card = await self.cards.get_job_card(job_card_id, fresh=True)
            if card is None:
                raise JobCardNotFoundError(job_card_id)
            if expected_step is not None and card.current_step != expected_step:
                raise ConcurrentModificationError(
                    "JobCard", job_card_id, f"at step {card.current_step}, not {expected_step}"
                )

            report = await self.quality.get_report_for_card(job_card_id)
            open_rejection = await self.quality.open_rejection_for_card(job_card_id)
            validate_advance(
                job_card_id=job_card_id,
                status=card.status,
                current_step=card.current_step,
                target_step=target_step,
                catalog=self.catalog,
                inspected=report is not None,
                open_rejection=open_rejection is not None,
                accepted_quantity=card.accepted_quantity,
            )

            from_step = card.current_step
            await self.transitions.append(card, to_step=target_step, actor_id=actor_id, notes=notes)
            card.current_step = target_step
            card.status = status_after_advance(target_step, self.catalog).value
            card.updated_at = self.clock.now()
            await self.cards.flush()
            self.emit("JobCardAdvanced", JobCardRead.model_validate(card), plan_id=card.plan_id, actor_id=actor_id)
        logger.info("Job card advanced: card=%s %d -> %d status=%s", job_card_id, from_step, target_step, card.status)
        return card

    # PUBLIC_INTERFACE
    async def hold(self, job_card_id: UUID, actor_id: str, reason: Optional[str] = None) -> JobCard:
        """Put a non-terminal card on hold; it cannot advance or be inspected until released."""
        async with self.unit_of_work("hold_job_card", entity_type="JobCard", entity_id=job_card_id):
            card = await self._require(job_card_id, fresh=True)
            if card.status == JobCardStatus.ON_HOLD.value:
                raise InvalidTransitionError(job_card_id, card.current_step, card.current_step, "already on hold")
            if is_terminal(card.status):
                raise InvalidTransitionError(
                    job_card_id, card.current_step, card.current_step, f"job card is {card.status}"
                )
            card.status = JobCardStatus.ON_HOLD.value
            card.hold_reason = reason
            card.updated_at = self.clock.now()
            await self.cards.flush()
            self.emit("JobCardHeld", JobCardRead.model_validate(card), plan_id=card.plan_id, actor_id=actor_id)
        logger.info("Job card held: card=%s step=%d reason=%s", job_card_id, card.current_step, reason)
        return card

    # PUBLIC_INTERFACE
    async def release(self, job_card_id: UUID, actor_id: str) -> JobCard:
        """Take a card off hold, restoring the status implied by its step and inspection state."""
        async with self.unit_of_work("release_job_card", entity_type="JobCard", entity_id=job_card_id):
            card = await self._require(job_card_id, fresh=True)
            if card.status != JobCardStatus.ON_HOLD.value:
                raise InvalidTransitionError(job_card_id, card.current_step, card.current_step, "job card is not on hold")
            report = await self.quality.get_report_for_card(job_card_id)
            open_rejection = await self.quality.open_rejection_for_card(job_card_id)
            card.status = status_for_position(
                current_step=card.current_step,
                transition_count=await self.transition_repo.count(job_card_id),
                catalog=self.catalog,
                accepted_quantity=card.accepted_quantity,
                rejected_quantity=card.rejected_quantity,
                open_rejection=open_rejection is not None,
                inspected=report is not None,
            ).value
            card.hold_reason = None
            card.updated_at = self.clock.now()
            await self.cards.flush()
            self.emit("JobCardReleased", JobCardRead.model_validate(card), plan_id=card.plan_id, actor_id=actor_id)
        logger.info("Job card released: card=%s status=%s", job_card_id, card.status)
        return card

    # PUBLIC_INTERFACE
    async def set_urgent(self, job_card_id: UUID, urgent: bool, actor_id: str) -> JobCard:
        """Override the urgent flag inherited from the plan."""
        async with self.unit_of_work("set_job_card_urgent", entity_type="JobCard", entity_id=job_card_id):
            card = await self._require(job_card_id, fresh=True)
            card.urgent = urgent
            card.updated_at = self.clock.now()
            await self.cards.flush()
            self.emit("JobCardUpdated", JobCardRead.model_validate(card), plan_id=card.plan_id, actor_id=actor_id)
        return card

    async def _require(self, job_card_id: UUID, *, fresh: bool = False) -> JobCard:
        card = await self.cards.get_job_card(job_card_id, fresh=fresh)
        if card is None:
            raise JobCardNotFoundError(job_card_id)
        return card

    # PUBLIC_INTERFACE
    async def get_job_card(self, job_card_id: UUID) -> JobCard:
        return await self._require(job_card_id, fresh=True)

    # PUBLIC_INTERFACE
    async def list_job_cards_for_plan(self, plan_id: UUID) -> List[JobCard]:
        """All cards of a plan, oldest first."""
        if await self.plans.get_plan(plan_id) is None:
            raise PlanNotFoundError(plan_id)
        return await self.cards.list_for_plan(plan_id)

    # PUBLIC_INTERFACE
    async def list_job_cards(
        self,
        *,
        plan_id: Optional[UUID] = None,
        status: Optional[JobCardStatus] = None,
        step: Optional[int] = None,
        urgent: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[JobCard]:
        """Filtered card list for the by-step and by-status boards; urgent cards first."""
        if step is not None:
            self.catalog.require(step)
        return await self.cards.list_job_cards(
            plan_id=plan_id,
            status=status.value if status else None,
            step=step,
            urgent=urgent,
            limit=limit,
            offset=offset,
        )
