"""
Database seeding for a local demo.

Seeds:
- One urgent production plan (RAW-ALLOY-17 -> CHROME-FINISH-17, 40 units)
- Its initial material request

Idempotent: the plan is looked up by its note marker first.

Usage:
  python -m jobcard_api.db.run_migrations upgrade head
  python -m jobcard_api.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobcard_api.db.models.production import ProductionPlan
from jobcard_api.db.session import get_session_maker
from jobcard_api.repositories.production import PlanRepository
from jobcard_api.services.plans import PlanService

logger = logging.getLogger(__name__)

SEED_MARKER = "[seed] demo plan"
SEED_ACTOR = "system-seed"


# PUBLIC_INTERFACE
async def seed_all(sessions: Optional[async_sessionmaker[AsyncSession]] = None) -> Optional[ProductionPlan]:
    """
    Create the demo plan unless it already exists.

    Returns the created plan, or None when seeding was skipped.
    """
    async with (sessions or get_session_maker())() as session:
        existing = await PlanRepository(session).find_by_note(SEED_MARKER)
        if existing is not None:
            logger.info("Seed plan already present: plan=%s", existing.id)
            return None
        svc = PlanService(session, auto_material_request=True)
        plan = await svc.create_plan(
            "RAW-ALLOY-17",
            "CHROME-FINISH-17",
            40,
            SEED_ACTOR,
            urgent=True,
            note=SEED_MARKER,
        )
        logger.info("Seeded demo plan: plan=%s", plan.id)
        return plan


if __name__ == "__main__":
    from jobcard_api.core.logging import configure_logging

    configure_logging()
    asyncio.run(seed_all())
