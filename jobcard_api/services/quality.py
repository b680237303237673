from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from jobcard_api.db.models.production import JobCard
from jobcard_api.db.models.quality import QAReport, Rejection
from jobcard_api.repositories.production import JobCardRepository
from jobcard_api.repositories.qual import QualityRepository
from jobcard_api.schemas.production import JobCardRead
from jobcard_api.schemas.quality import InspectionResult, QAReportRead, RejectionRead
from jobcard_api.services.base import BaseService
from jobcard_api.services.transitions import TransitionLogService
from jobcard_api.workflow.errors import (
    AlreadyInspectedError,
    InvalidInspectionError,
    JobCardNotFoundError,
    QAReportNotFoundError,
)
from jobcard_api.workflow.state import JobCardStatus, Severity, status_after_advance

logger = logging.getLogger(__name__)


@dataclass
class Inspection:
    """What submit_inspection wrote."""
    report: QAReport
    job_card: JobCard
    rejection: Optional[Rejection] = None

    def to_result(self) -> InspectionResult:
        return InspectionResult(
            report=QAReportRead.model_validate(self.report),
            job_card=JobCardRead.model_validate(self.job_card),
            rejection=RejectionRead.model_validate(self.rejection) if self.rejection else None,
        )


class QAGateService(BaseService):
    """
    Guards the exit of the QA gate step.

    A card is inspected exactly once. A clean inspection moves it past the
    gate; any rejected units open a Rejection and keep it at the gate.
    """

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.cards = JobCardRepository(session)
        self.quality = QualityRepository(session)
        self.transitions = TransitionLogService(session, **self.share_context())

    # PUBLIC_INTERFACE
    async def submit_inspection(
        self,
        job_card_id: UUID,
        accepted_quantity: int,
        rejected_quantity: int,
        quality_score: int,
        actor_id: str,
        notes: Optional[str] = None,
        *,
        reason: Optional[str] = None,
        severity: Severity = Severity.MEDIUM,
    ) -> Inspection:
        """
        Record the QA inspection of a job card waiting at the gate.

        Raises:
            AlreadyInspectedError: the card already has a QA report.
            InvalidInspectionError: card not qa-pending, quantities do not add
                up to the card quantity, or score outside 0..100.
        """
        def _duplicate(_exc) -> AlreadyInspectedError:
            return AlreadyInspectedError(job_card_id)

        async with self.unit_of_work(
            "submit_inspection", entity_type="JobCard", entity_id=job_card_id, on_integrity=_duplicate
        ):
            card = await self.cards.get_job_card(job_card_id, for_update=True)
            if card is None:
                raise JobCardNotFoundError(job_card_id)
            if await self.quality.get_report_for_card(job_card_id) is not None:
                raise AlreadyInspectedError(job_card_id)
            self._check(card, accepted_quantity, rejected_quantity, quality_score)

            now = self.clock.now()
            report = QAReport(
                job_card_id=card.id,
                qa_actor_id=actor_id,
                inspected_at=now,
                accepted_quantity=accepted_quantity,
                rejected_quantity=rejected_quantity,
                quality_score=quality_score,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            await self.quality.add(report)
            await self.quality.flush()

            card.accepted_quantity = accepted_quantity
            card.rejected_quantity = rejected_quantity
            card.updated_at = now

            rejection = None
            advanced = False
            if rejected_quantity > 0:
                rejection = Rejection(
                    qa_report_id=report.id,
                    job_card_id=card.id,
                    plan_id=card.plan_id,
                    rejected_quantity=rejected_quantity,
                    reason=reason,
                    severity=Severity(severity).value,
                    is_resolved=False,
                    created_at=now,
                    updated_at=now,
                )
                await self.quality.add(rejection)
            else:
                next_step = self.catalog.qa_gate_step + 1
                await self.transitions.append(card, to_step=next_step, actor_id=actor_id, notes="QA passed")
                card.current_step = next_step
                card.status = status_after_advance(next_step, self.catalog).value
                advanced = True
            await self.quality.flush()

            inspection = Inspection(report=report, job_card=card, rejection=rejection)
            self.emit("InspectionSubmitted", inspection.to_result(), plan_id=card.plan_id, actor_id=actor_id)
            if advanced:
                self.emit("JobCardAdvanced", JobCardRead.model_validate(card), plan_id=card.plan_id, actor_id=actor_id)

        logger.info(
            "Inspection submitted: card=%s accepted=%d rejected=%d score=%d rejection=%s",
            job_card_id, accepted_quantity, rejected_quantity, quality_score,
            rejection.id if rejection else None,
        )
        return inspection

    def _check(self, card: JobCard, accepted: int, rejected: int, score: int) -> None:
        if card.status != JobCardStatus.QA_PENDING.value or card.current_step != self.catalog.qa_gate_step:
            raise InvalidInspectionError(
                card.id, f"job card is {card.status} at step {card.current_step}, not qa-pending at the QA gate"
            )
        if accepted < 0 or rejected < 0:
            raise InvalidInspectionError(card.id, "quantities must not be negative")
        if accepted + rejected != card.quantity:
            raise InvalidInspectionError(
                card.id, f"accepted {accepted} + rejected {rejected} must equal quantity {card.quantity}"
            )
        if not 0 <= score <= 100:
            raise InvalidInspectionError(card.id, f"quality score {score} outside 0..100")

    # PUBLIC_INTERFACE
    async def get_report(self, job_card_id: UUID) -> QAReport:
        """The QA report of a job card."""
        if await self.cards.get_job_card(job_card_id) is None:
            raise JobCardNotFoundError(job_card_id)
        report = await self.quality.get_report_for_card(job_card_id)
        if report is None:
            raise QAReportNotFoundError(job_card_id)
        return report
