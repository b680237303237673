"""
Shared fixtures: a throwaway SQLite database per test, a controllable clock,
an event recorder, and the services wired to all three.
"""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from jobcard_api.db import models  # noqa: F401
from jobcard_api.db.base import Base
from jobcard_api.db.session import make_session_maker
from jobcard_api.services.events import EventPublisher, EventRecorder
from jobcard_api.services.job_cards import JobCardService
from jobcard_api.services.materials import MaterialLedgerService
from jobcard_api.services.orchestration import ProductionOrchestrator
from jobcard_api.services.plans import PlanService
from jobcard_api.services.quality import QAGateService
from jobcard_api.services.rejections import RejectionService
from jobcard_api.services.transitions import TransitionLogService
from jobcard_api.workflow.clock import DeterministicClock
from jobcard_api.workflow.steps import get_step_catalog

PLANNER = "planner-1"
OPERATOR = "operator-7"
INSPECTOR = "qa-3"


@pytest.fixture
async def engine(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'jobcards.db'}"
    eng = create_async_engine(url, connect_args={"timeout": 10})
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def catalog():
    return get_step_catalog()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def publisher(recorder):
    return EventPublisher([recorder])


@pytest.fixture
def ctx(clock, catalog, publisher):
    return {"clock": clock, "catalog": catalog, "publisher": publisher}


@pytest.fixture
def plans(session, ctx):
    return PlanService(session, auto_material_request=False, **ctx)


@pytest.fixture
def job_cards(session, ctx):
    return JobCardService(session, **ctx)


@pytest.fixture
def transitions(session, ctx):
    return TransitionLogService(session, **ctx)


@pytest.fixture
def qa(session, ctx):
    return QAGateService(session, **ctx)


@pytest.fixture
def rejections(session, ctx):
    return RejectionService(session, **ctx)


@pytest.fixture
def materials(session, ctx):
    return MaterialLedgerService(session, **ctx)


@pytest.fixture
def orchestrator(session, ctx):
    return ProductionOrchestrator(session, enforce_material_gate=True, **ctx)


@pytest.fixture
def make_plan(plans):
    async def _make(total_quantity: int = 100, **kwargs):
        return await plans.create_plan("ALLOY-A", "CHROME-B", total_quantity, PLANNER, **kwargs)

    return _make


@pytest.fixture
def card_at_gate(make_plan, job_cards, catalog):
    """A fresh plan plus one card already advanced to the QA gate."""

    async def _make(total_quantity: int = 100, quantity: int = 100):
        plan = await make_plan(total_quantity)
        card = await job_cards.create_job_card(plan.id, quantity, PLANNER)
        card = await job_cards.advance_step(card.id, catalog.qa_gate_step, OPERATOR)
        return plan, card

    return _make
