"""
Competing writers on one job card, each through its own session.
"""

import asyncio

import pytest

from conftest import OPERATOR, PLANNER
from jobcard_api.services.job_cards import JobCardService
from jobcard_api.workflow.errors import CapacityExceededError, ConcurrentModificationError, WorkflowError


@pytest.fixture
async def card_at_step_three(make_plan, job_cards):
    plan = await make_plan(10)
    card = await job_cards.create_job_card(plan.id, 10, PLANNER)
    await job_cards.advance_step(card.id, 3, OPERATOR)
    return plan.id, card.id


async def test_second_writer_with_same_expectation_loses(session_maker, ctx, card_at_step_three):
    _, card_id = card_at_step_three
    async with session_maker() as first, session_maker() as second:
        winner = JobCardService(first, **ctx)
        loser = JobCardService(second, **ctx)

        card = await winner.advance_step(card_id, 4, "operator-a", expected_step=3)
        assert card.current_step == 4

        with pytest.raises(ConcurrentModificationError):
            await loser.advance_step(card_id, 4, "operator-b", expected_step=3)

        log = await loser.transitions.history(card_id)
        assert [t.to_step for t in log] == [1, 3, 4]
        assert log[-1].actor_id == "operator-a"


async def test_stale_instance_is_detected_on_flush(session_maker, ctx, card_at_step_three):
    _, card_id = card_at_step_three
    async with session_maker() as first, session_maker() as second:
        stale_service = JobCardService(second, **ctx)
        stale = await stale_service.cards.get_job_card(card_id)
        assert stale.version == 2

        await JobCardService(first, **ctx).advance_step(card_id, 4, "operator-a")

        with pytest.raises(ConcurrentModificationError):
            async with stale_service.unit_of_work("touch", entity_type="JobCard", entity_id=card_id):
                stale.notes = "late edit"
                await second.flush()


async def test_racing_advances_leave_one_winner(session_maker, ctx, card_at_step_three):
    _, card_id = card_at_step_three

    async def attempt(actor_id):
        async with session_maker() as s:
            try:
                card = await JobCardService(s, **ctx).advance_step(card_id, 4, actor_id, expected_step=3)
                return card.current_step
            except WorkflowError as exc:
                return exc

    results = await asyncio.gather(attempt("operator-a"), attempt("operator-b"))

    successes = [r for r in results if r == 4]
    failures = [r for r in results if isinstance(r, WorkflowError)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], ConcurrentModificationError)
    assert failures[0].retryable is True

    async with session_maker() as s:
        log = await JobCardService(s, **ctx).transitions.history(card_id)
        assert [t.to_step for t in log] == [1, 3, 4]


async def test_capacity_is_checked_against_committed_cards(session_maker, ctx, make_plan):
    plan_id = (await make_plan(10)).id
    async with session_maker() as first, session_maker() as second:
        await JobCardService(first, **ctx).create_job_card(plan_id, 6, PLANNER)
        with pytest.raises(CapacityExceededError) as info:
            await JobCardService(second, **ctx).create_job_card(plan_id, 6, PLANNER)
        assert info.value.committed == 6


async def test_concurrent_creations_cannot_overcommit_plan(session_maker, ctx, make_plan):
    plan_id = (await make_plan(10)).id

    async def attempt(actor_id):
        async with session_maker() as s:
            try:
                card = await JobCardService(s, **ctx).create_job_card(plan_id, 6, actor_id)
                return card.quantity
            except WorkflowError as exc:
                return exc

    results = await asyncio.gather(attempt("planner-a"), attempt("planner-b"))

    assert [r for r in results if r == 6] == [6]
    failures = [r for r in results if isinstance(r, WorkflowError)]
    assert len(failures) == 1
    assert isinstance(failures[0], CapacityExceededError)
    assert failures[0].committed == 6

    async with session_maker() as s:
        cards = await JobCardService(s, **ctx).list_job_cards_for_plan(plan_id)
        assert [c.quantity for c in cards] == [6]
