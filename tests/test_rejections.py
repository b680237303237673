import uuid

import pytest

from conftest import INSPECTOR, OPERATOR, PLANNER
from jobcard_api.workflow.errors import AlreadyResolvedError, InvalidTransitionError, RejectionNotFoundError
from jobcard_api.workflow.state import JobCardStatus, ResolutionAction


@pytest.fixture
def inspected_with_rejection(card_at_gate, qa):
    async def _make(total_quantity=100, quantity=100, accepted=90, rejected=10):
        plan, card = await card_at_gate(total_quantity=total_quantity, quantity=quantity)
        inspection = await qa.submit_inspection(card.id, accepted, rejected, 80, INSPECTOR, reason="porosity")
        return plan, inspection.job_card, inspection.rejection

    return _make


async def test_rework_spawns_new_card_at_step_one(inspected_with_rejection, rejections, job_cards, transitions, clock, recorder):
    plan, card, rejection = await inspected_with_rejection()
    clock.advance(minutes=10)

    resolution = await rejections.resolve(rejection.id, ResolutionAction.REWORK, PLANNER, "strip and recoat")

    resolved = resolution.rejection
    assert resolved.is_resolved is True
    assert resolved.resolution_action == "rework"
    assert resolved.resolved_at == clock.now()
    assert resolved.resolved_by == PLANNER

    rework = resolution.rework_job_card
    assert rework is not None
    assert rework.quantity == 10
    assert rework.current_step == 1
    assert rework.status == JobCardStatus.PENDING.value
    assert rework.plan_id == plan.id
    assert rework.parent_job_card_id == card.id
    assert rework.rework_of_rejection_id == rejection.id
    assert resolved.rework_job_card_id == rework.id

    log = await transitions.history(rework.id)
    assert [(t.from_step, t.to_step) for t in log] == [(None, 1)]

    cards = await job_cards.list_job_cards_for_plan(plan.id)
    assert len(cards) == 2
    assert "RejectionResolved" in recorder.types()


async def test_resolve_twice_fails_and_spawns_only_one_card(inspected_with_rejection, rejections, job_cards):
    plan, _, rejection = await inspected_with_rejection()
    plan_id, rejection_id = plan.id, rejection.id
    await rejections.resolve(rejection_id, ResolutionAction.REWORK, PLANNER)

    with pytest.raises(AlreadyResolvedError):
        await rejections.resolve(rejection_id, ResolutionAction.REWORK, PLANNER)
    with pytest.raises(AlreadyResolvedError):
        await rejections.resolve(rejection_id, ResolutionAction.SCRAP, PLANNER)

    assert len(await job_cards.list_job_cards_for_plan(plan_id)) == 2


async def test_accept_overrides_rejection_and_unblocks_gate(inspected_with_rejection, rejections, job_cards):
    _, card, rejection = await inspected_with_rejection()
    card_id, rejection_id = card.id, rejection.id

    with pytest.raises(InvalidTransitionError):
        await job_cards.advance_step(card_id, 11, OPERATOR)

    resolution = await rejections.resolve(rejection_id, ResolutionAction.ACCEPT, PLANNER)
    assert resolution.rework_job_card is None
    assert resolution.job_card.accepted_quantity == 100
    assert resolution.job_card.rejected_quantity == 0

    card = await job_cards.advance_step(card_id, 11, OPERATOR)
    assert card.status == JobCardStatus.COMPLETED.value
    assert card.accepted_quantity == 100


async def test_scrap_lets_accepted_portion_continue(inspected_with_rejection, rejections, job_cards, plans):
    plan, card, rejection = await inspected_with_rejection()
    await rejections.resolve(rejection.id, ResolutionAction.SCRAP, PLANNER)

    card = await job_cards.advance_step(card.id, 11, OPERATOR)
    assert card.status == JobCardStatus.COMPLETED.value

    progress = await plans.progress(plan.id)
    assert progress.completed_quantity == 90
    assert progress.rejected_quantity == 10
    assert progress.in_production_quantity == 0
    assert progress.is_completed is True


async def test_fully_rejected_card_becomes_rejected(inspected_with_rejection, rejections, plans):
    plan, _, rejection = await inspected_with_rejection(total_quantity=20, quantity=20, accepted=0, rejected=20)
    resolution = await rejections.resolve(rejection.id, ResolutionAction.RETURN, PLANNER)

    assert resolution.job_card.status == JobCardStatus.REJECTED.value
    progress = await plans.progress(plan.id)
    assert progress.rejected_quantity == 20
    assert progress.is_completed is True


async def test_rework_cycle_through_to_completion(inspected_with_rejection, rejections, job_cards, qa, plans):
    plan, card, rejection = await inspected_with_rejection()
    rework = (await rejections.resolve(rejection.id, ResolutionAction.REWORK, PLANNER)).rework_job_card

    progress = await plans.progress(plan.id)
    assert progress.committed_quantity == 100
    assert progress.reworked_quantity == 10
    assert progress.rejected_quantity == 0
    assert progress.is_completed is False

    await job_cards.advance_step(card.id, 11, OPERATOR)
    await job_cards.advance_step(rework.id, 10, OPERATOR)
    await qa.submit_inspection(rework.id, 10, 0, 95, INSPECTOR)

    progress = await plans.progress(plan.id)
    assert progress.completed_quantity == 100
    assert progress.is_completed is True


async def test_missing_rejection(rejections):
    with pytest.raises(RejectionNotFoundError):
        await rejections.resolve(uuid.uuid4(), ResolutionAction.SCRAP, PLANNER)
    with pytest.raises(RejectionNotFoundError):
        await rejections.get_rejection(uuid.uuid4())
