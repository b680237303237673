import uuid

import pytest

from conftest import OPERATOR, PLANNER
from jobcard_api.workflow.errors import (
    CapacityExceededError,
    ConcurrentModificationError,
    InvalidTransitionError,
    JobCardNotFoundError,
    PlanNotFoundError,
    UnknownStepError,
    ValidationError,
)
from jobcard_api.workflow.state import JobCardStatus

# A failed unit of work rolls the session back, which expires every loaded
# object; tests keep plain ids around instead of touching expired instances.


async def test_create_job_card_starts_pending_at_step_one(make_plan, job_cards, transitions, recorder):
    plan = await make_plan(100)
    card = await job_cards.create_job_card(plan.id, 100, PLANNER)

    assert card.current_step == 1
    assert card.status == JobCardStatus.PENDING.value
    assert card.accepted_quantity is None and card.rejected_quantity is None
    assert card.version == 1

    log = await transitions.history(card.id)
    assert len(log) == 1
    assert log[0].from_step is None
    assert log[0].to_step == 1
    assert log[0].actor_id == PLANNER
    assert "JobCardCreated" in recorder.types()


async def test_job_card_inherits_plan_urgency_unless_overridden(make_plan, job_cards):
    plan = await make_plan(30, urgent=True)
    inherited = await job_cards.create_job_card(plan.id, 10, PLANNER)
    overridden = await job_cards.create_job_card(plan.id, 10, PLANNER, urgent=False)
    assert inherited.urgent is True
    assert overridden.urgent is False

    updated = await job_cards.set_urgent(overridden.id, True, PLANNER)
    assert updated.urgent is True


async def test_capacity_exceeded_on_single_card(make_plan, job_cards):
    plan_id = (await make_plan(50)).id
    with pytest.raises(CapacityExceededError) as info:
        await job_cards.create_job_card(plan_id, 60, PLANNER)
    err = info.value
    assert err.requested == 60
    assert err.committed == 0
    assert err.total == 50
    assert await job_cards.list_job_cards_for_plan(plan_id) == []


async def test_capacity_counts_existing_cards(make_plan, job_cards):
    plan_id = (await make_plan(50)).id
    await job_cards.create_job_card(plan_id, 30, PLANNER)
    await job_cards.create_job_card(plan_id, 20, PLANNER)
    with pytest.raises(CapacityExceededError) as info:
        await job_cards.create_job_card(plan_id, 1, PLANNER)
    assert info.value.committed == 50


async def test_create_rejects_bad_input(make_plan, job_cards):
    plan_id = (await make_plan(10)).id
    with pytest.raises(ValidationError):
        await job_cards.create_job_card(plan_id, 0, PLANNER)
    with pytest.raises(PlanNotFoundError):
        await job_cards.create_job_card(uuid.uuid4(), 1, PLANNER)


async def test_advance_updates_status_and_log(make_plan, job_cards, transitions, clock, recorder):
    plan = await make_plan(20)
    card = await job_cards.create_job_card(plan.id, 20, PLANNER)

    clock.advance(minutes=30)
    card = await job_cards.advance_step(card.id, 2, OPERATOR, "painted")
    assert card.current_step == 2
    assert card.status == JobCardStatus.IN_PROGRESS.value
    assert card.version == 2

    clock.advance(minutes=45)
    card = await job_cards.advance_step(card.id, 10, OPERATOR)
    assert card.status == JobCardStatus.QA_PENDING.value

    log = await transitions.history(card.id)
    assert [(t.from_step, t.to_step) for t in log] == [(None, 1), (1, 2), (2, 10)]
    assert [t.sequence for t in log] == [1, 2, 3]
    assert log[1].duration_seconds == 30 * 60
    assert log[1].notes == "painted"
    assert recorder.types().count("JobCardAdvanced") == 2


async def test_backward_move_is_rejected_and_nothing_is_written(make_plan, job_cards, transitions):
    plan = await make_plan(20)
    card_id = (await job_cards.create_job_card(plan.id, 20, PLANNER)).id
    await job_cards.advance_step(card_id, 4, OPERATOR)

    with pytest.raises(InvalidTransitionError):
        await job_cards.advance_step(card_id, 3, OPERATOR)
    with pytest.raises(InvalidTransitionError):
        await job_cards.advance_step(card_id, 4, OPERATOR)

    fresh = await job_cards.get_job_card(card_id)
    assert fresh.current_step == 4
    assert len(await transitions.history(card_id)) == 2


async def test_unknown_step_is_rejected(make_plan, job_cards):
    plan = await make_plan(20)
    card_id = (await job_cards.create_job_card(plan.id, 20, PLANNER)).id
    with pytest.raises(UnknownStepError):
        await job_cards.advance_step(card_id, 99, OPERATOR)


async def test_cannot_skip_past_qa_gate(make_plan, job_cards):
    plan = await make_plan(20)
    card_id = (await job_cards.create_job_card(plan.id, 20, PLANNER)).id
    with pytest.raises(InvalidTransitionError):
        await job_cards.advance_step(card_id, 11, OPERATOR)


async def test_uninspected_card_cannot_leave_gate(card_at_gate, job_cards):
    _, card = await card_at_gate()
    card_id = card.id
    with pytest.raises(InvalidTransitionError, match="inspection"):
        await job_cards.advance_step(card_id, 11, OPERATOR)


async def test_expected_step_mismatch_is_a_concurrent_modification(make_plan, job_cards):
    plan = await make_plan(20)
    card_id = (await job_cards.create_job_card(plan.id, 20, PLANNER)).id
    await job_cards.advance_step(card_id, 3, OPERATOR, expected_step=1)

    with pytest.raises(ConcurrentModificationError) as info:
        await job_cards.advance_step(card_id, 4, OPERATOR, expected_step=1)
    assert info.value.retryable is True
    assert (await job_cards.get_job_card(card_id)).current_step == 3


async def test_hold_and_release(make_plan, job_cards, recorder):
    plan = await make_plan(20)
    card_id = (await job_cards.create_job_card(plan.id, 20, PLANNER)).id
    await job_cards.advance_step(card_id, 5, OPERATOR)

    held = await job_cards.hold(card_id, OPERATOR, "coating line down")
    assert held.status == JobCardStatus.ON_HOLD.value
    assert held.hold_reason == "coating line down"

    with pytest.raises(InvalidTransitionError, match="on hold"):
        await job_cards.advance_step(card_id, 6, OPERATOR)
    with pytest.raises(InvalidTransitionError):
        await job_cards.hold(card_id, OPERATOR)

    released = await job_cards.release(card_id, OPERATOR)
    assert released.status == JobCardStatus.IN_PROGRESS.value
    assert released.hold_reason is None
    assert "JobCardHeld" in recorder.types()
    assert "JobCardReleased" in recorder.types()

    with pytest.raises(InvalidTransitionError):
        await job_cards.release(card_id, OPERATOR)


async def test_release_of_fresh_card_restores_pending(make_plan, job_cards):
    plan = await make_plan(20)
    card = await job_cards.create_job_card(plan.id, 20, PLANNER)
    await job_cards.hold(card.id, OPERATOR)
    released = await job_cards.release(card.id, OPERATOR)
    assert released.status == JobCardStatus.PENDING.value


async def test_list_job_cards_filters(make_plan, job_cards):
    plan = await make_plan(30)
    other = await make_plan(30)
    a = await job_cards.create_job_card(plan.id, 10, PLANNER)
    b = await job_cards.create_job_card(plan.id, 10, PLANNER, urgent=True)
    await job_cards.create_job_card(other.id, 10, PLANNER)
    await job_cards.advance_step(a.id, 3, OPERATOR)

    in_plan = await job_cards.list_job_cards(plan_id=plan.id)
    assert {c.id for c in in_plan} == {a.id, b.id}
    assert in_plan[0].id == b.id

    at_three = await job_cards.list_job_cards(step=3)
    assert [c.id for c in at_three] == [a.id]

    pending = await job_cards.list_job_cards(plan_id=plan.id, status=JobCardStatus.PENDING)
    assert [c.id for c in pending] == [b.id]


async def test_missing_card(job_cards):
    with pytest.raises(JobCardNotFoundError):
        await job_cards.get_job_card(uuid.uuid4())
    with pytest.raises(JobCardNotFoundError):
        await job_cards.advance_step(uuid.uuid4(), 2, OPERATOR)
