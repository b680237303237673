import uuid

import pytest

from conftest import INSPECTOR, OPERATOR, PLANNER
from jobcard_api.workflow.errors import (
    AlreadyInspectedError,
    InvalidInspectionError,
    JobCardNotFoundError,
    QAReportNotFoundError,
)
from jobcard_api.workflow.state import JobCardStatus, Severity


async def test_partial_rejection_keeps_card_at_gate(card_at_gate, qa, rejections, transitions, clock, recorder):
    plan, card = await card_at_gate(total_quantity=100, quantity=100)
    clock.advance(hours=2)

    inspection = await qa.submit_inspection(
        card.id, 90, 10, 88, INSPECTOR, "scratches on rim", reason="surface scratches", severity=Severity.HIGH
    )

    report = inspection.report
    assert report.accepted_quantity == 90
    assert report.rejected_quantity == 10
    assert report.quality_score == 88
    assert report.qa_actor_id == INSPECTOR
    assert report.inspected_at == clock.now()

    rejection = inspection.rejection
    assert rejection is not None
    assert rejection.rejected_quantity == 10
    assert rejection.is_resolved is False
    assert rejection.plan_id == plan.id
    assert rejection.severity == "high"
    assert rejection.reason == "surface scratches"

    card = inspection.job_card
    assert card.current_step == 10
    assert card.status == JobCardStatus.QA_PENDING.value
    assert card.accepted_quantity + card.rejected_quantity == card.quantity

    open_rejections = await rejections.list_rejections(plan_id=plan.id, resolved=False)
    assert [r.id for r in open_rejections] == [rejection.id]
    assert len(await transitions.history(card.id)) == 2
    assert "InspectionSubmitted" in recorder.types()


async def test_clean_inspection_moves_card_past_gate(card_at_gate, qa, transitions, recorder):
    _, card = await card_at_gate(total_quantity=40, quantity=40)

    inspection = await qa.submit_inspection(card.id, 40, 0, 97, INSPECTOR)

    assert inspection.rejection is None
    assert inspection.job_card.current_step == 11
    assert inspection.job_card.status == JobCardStatus.COMPLETED.value
    log = await transitions.history(card.id)
    assert (log[-1].from_step, log[-1].to_step) == (10, 11)
    assert recorder.types()[-2:] == ["InspectionSubmitted", "JobCardAdvanced"]


async def test_second_inspection_is_rejected(card_at_gate, qa, rejections):
    plan, card = await card_at_gate(total_quantity=20, quantity=20)
    plan_id, card_id = plan.id, card.id
    await qa.submit_inspection(card_id, 15, 5, 70, INSPECTOR)

    with pytest.raises(AlreadyInspectedError):
        await qa.submit_inspection(card_id, 15, 5, 70, INSPECTOR)

    assert len(await rejections.list_rejections(plan_id=plan_id)) == 1


@pytest.mark.parametrize(
    "accepted, rejected, score",
    [
        (10, 5, 80),
        (20, 1, 80),
        (-1, 21, 80),
        (20, 0, 101),
    ],
)
async def test_inspection_quantities_must_balance(card_at_gate, qa, accepted, rejected, score):
    _, card = await card_at_gate(total_quantity=20, quantity=20)
    card_id = card.id
    with pytest.raises(InvalidInspectionError):
        await qa.submit_inspection(card_id, accepted, rejected, score, INSPECTOR)
    with pytest.raises(QAReportNotFoundError):
        await qa.get_report(card_id)


async def test_inspection_requires_card_at_gate(make_plan, job_cards, qa):
    plan = await make_plan(20)
    card_id = (await job_cards.create_job_card(plan.id, 20, PLANNER)).id
    await job_cards.advance_step(card_id, 9, OPERATOR)
    with pytest.raises(InvalidInspectionError, match="qa-pending"):
        await qa.submit_inspection(card_id, 20, 0, 90, INSPECTOR)


async def test_held_card_cannot_be_inspected(card_at_gate, job_cards, qa):
    _, card = await card_at_gate(total_quantity=20, quantity=20)
    card_id = card.id
    await job_cards.hold(card_id, OPERATOR, "awaiting gauge calibration")
    with pytest.raises(InvalidInspectionError):
        await qa.submit_inspection(card_id, 20, 0, 90, INSPECTOR)


async def test_get_report(card_at_gate, qa):
    _, card = await card_at_gate(total_quantity=20, quantity=20)
    await qa.submit_inspection(card.id, 18, 2, 75, INSPECTOR, "ok")
    report = await qa.get_report(card.id)
    assert report.notes == "ok"

    with pytest.raises(JobCardNotFoundError):
        await qa.get_report(uuid.uuid4())
