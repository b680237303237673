from __future__ import annotations

import logging
from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobcard_api.core.settings import AppSettings, get_app_settings
from jobcard_api.db.session import get_async_session
from jobcard_api.services.events import EventPublisher, event_publisher
from jobcard_api.services.job_cards import JobCardService
from jobcard_api.services.materials import MaterialLedgerService
from jobcard_api.services.orchestration import ProductionOrchestrator
from jobcard_api.services.plans import PlanService
from jobcard_api.services.quality import QAGateService
from jobcard_api.services.rejections import RejectionService
from jobcard_api.services.transitions import TransitionLogService
from jobcard_api.workflow.clock import Clock, SystemClock
from jobcard_api.workflow.steps import StepCatalog, get_step_catalog

logger = logging.getLogger(__name__)

_system_clock = SystemClock()


# PUBLIC_INTERFACE
async def get_actor_id(x_actor_id: str | None = Header(default=None, alias="X-Actor-ID")) -> str:
    """
    Extract the acting user from the X-Actor-ID header.

    The identity collaborator upstream vouches for the value; it is trusted
    as-is and only checked for presence.

    Raises:
        HTTPException: 400 Bad Request if header missing or blank.
    """
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID header is required.",
        )
    return x_actor_id.strip()


# PUBLIC_INTERFACE
async def get_session(
    session_dep=Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession for one request."""
    yield session_dep


def get_settings_dep() -> AppSettings:
    return get_app_settings()


def get_clock() -> Clock:
    return _system_clock


def get_catalog() -> StepCatalog:
    return get_step_catalog()


def get_publisher() -> EventPublisher:
    return event_publisher


def _context(clock: Clock, catalog: StepCatalog, publisher: EventPublisher) -> dict:
    return {"clock": clock, "catalog": catalog, "publisher": publisher}


# PUBLIC_INTERFACE
def get_plan_service(
    session: AsyncSession = Depends(get_session),
    settings: AppSettings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
    catalog: StepCatalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_publisher),
) -> PlanService:
    return PlanService(
        session,
        auto_material_request=settings.AUTO_MATERIAL_REQUEST,
        **_context(clock, catalog, publisher),
    )


# PUBLIC_INTERFACE
def get_job_card_service(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    catalog: StepCatalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_publisher),
) -> JobCardService:
    return JobCardService(session, **_context(clock, catalog, publisher))


# PUBLIC_INTERFACE
def get_orchestrator(
    session: AsyncSession = Depends(get_session),
    settings: AppSettings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
    catalog: StepCatalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_publisher),
) -> ProductionOrchestrator:
    return ProductionOrchestrator(
        session,
        enforce_material_gate=settings.ENFORCE_MATERIAL_GATE,
        **_context(clock, catalog, publisher),
    )


# PUBLIC_INTERFACE
def get_transition_service(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    catalog: StepCatalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_publisher),
) -> TransitionLogService:
    return TransitionLogService(session, **_context(clock, catalog, publisher))


# PUBLIC_INTERFACE
def get_qa_service(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    catalog: StepCatalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_publisher),
) -> QAGateService:
    return QAGateService(session, **_context(clock, catalog, publisher))


# PUBLIC_INTERFACE
def get_rejection_service(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    catalog: StepCatalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_publisher),
) -> RejectionService:
    return RejectionService(session, **_context(clock, catalog, publisher))


# PUBLIC_INTERFACE
def get_material_service(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    catalog: StepCatalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_publisher),
) -> MaterialLedgerService:
    return MaterialLedgerService(session, **_context(clock, catalog, publisher))
