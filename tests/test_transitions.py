import uuid

import pytest

from conftest import OPERATOR, PLANNER
from jobcard_api.workflow.errors import JobCardNotFoundError, UnknownStepError


async def test_dwell_time_follows_the_clock(make_plan, job_cards, transitions, clock):
    plan = await make_plan(10)
    card = await job_cards.create_job_card(plan.id, 10, PLANNER)
    clock.advance(minutes=5)
    await job_cards.advance_step(card.id, 3, OPERATOR)
    clock.advance(hours=2)
    await job_cards.advance_step(card.id, 4, OPERATOR)

    assert await transitions.dwell_time(card.id, 1) == 300
    assert await transitions.dwell_time(card.id, 3) == 7200


async def test_dwell_time_is_none_until_the_card_leaves(make_plan, job_cards, transitions, clock):
    plan = await make_plan(10)
    card = await job_cards.create_job_card(plan.id, 10, PLANNER)
    clock.advance(minutes=5)
    await job_cards.advance_step(card.id, 3, OPERATOR)

    assert await transitions.dwell_time(card.id, 3) is None
    assert await transitions.dwell_time(card.id, 2) is None


async def test_dwell_time_lookups_are_validated(make_plan, job_cards, transitions):
    plan = await make_plan(10)
    card = await job_cards.create_job_card(plan.id, 10, PLANNER)
    with pytest.raises(UnknownStepError):
        await transitions.dwell_time(card.id, 0)
    with pytest.raises(JobCardNotFoundError):
        await transitions.dwell_time(uuid.uuid4(), 1)
    with pytest.raises(JobCardNotFoundError):
        await transitions.history(uuid.uuid4())


async def test_step_dwell_summary(make_plan, job_cards, transitions, clock, catalog):
    plan = await make_plan(20)
    other = await make_plan(20)
    a = await job_cards.create_job_card(plan.id, 10, PLANNER)
    b = await job_cards.create_job_card(plan.id, 10, PLANNER)
    c = await job_cards.create_job_card(other.id, 10, PLANNER)

    clock.advance(minutes=10)
    await job_cards.advance_step(a.id, 2, OPERATOR)
    clock.advance(minutes=20)
    await job_cards.advance_step(b.id, 2, OPERATOR)
    await job_cards.advance_step(c.id, 2, OPERATOR)

    stats = {s.step_id: s for s in await transitions.step_dwell_summary(plan.id)}
    assert len(stats) == len(catalog)
    assert stats[1].passes == 2
    assert stats[1].average_seconds == 1200
    assert stats[1].max_seconds == 1800
    assert stats[2].passes == 0
    assert stats[2].average_seconds is None

    overall = {s.step_id: s for s in await transitions.step_dwell_summary()}
    assert overall[1].passes == 3
