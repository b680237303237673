"""
ASGI entry point: uvicorn jobcard_api.api.main:app
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from jobcard_api.api.errors import install_error_handlers
from jobcard_api.api.routes.job_cards import router as job_cards_router
from jobcard_api.api.routes.materials import router as materials_router
from jobcard_api.api.routes.plans import router as plans_router
from jobcard_api.api.routes.quality import router as quality_router
from jobcard_api.api.routes.realtime import router as realtime_router
from jobcard_api.api.routes.steps import router as steps_router
from jobcard_api.api.routes.system import router as system_router
from jobcard_api.core.logging import configure_logging, request_context
from jobcard_api.core.settings import AppSettings, get_app_settings
from jobcard_api.db.run_migrations import main as run_alembic
from jobcard_api.db.seed import seed_all
from jobcard_api.db.session import dispose_engine

settings = get_app_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

TAGS = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Steps", "description": "Pipeline step catalog."},
    {"name": "Plans", "description": "Production plans and derived progress."},
    {"name": "Job Cards", "description": "Job card lifecycle, transition history and dwell time."},
    {"name": "Quality", "description": "QA gate inspections and rejection resolution."},
    {"name": "Materials", "description": "Material requests and fulfillments."},
    {"name": "WebSocket", "description": "Real-time workflow events."},
]


async def prepare_database(cfg: AppSettings) -> None:
    """
    Upgrade the schema and optionally seed demo data. Failures are logged and
    left to readiness probes rather than stopping the process.
    """
    if cfg.RUN_MIGRATIONS_ON_STARTUP:
        logger.info("Applying migrations (upgrade head)")
        try:
            # env.py runs its own event loop
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
        except Exception:
            logger.exception("Migrations failed")
        else:
            logger.info("Schema is up to date")

    if cfg.AUTO_SEED:
        try:
            await seed_all()
        except Exception:
            logger.exception("Seeding failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await prepare_database(settings)
    yield
    await dispose_engine()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=TAGS,
    lifespan=lifespan,
)

allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if allow_credentials and "*" in settings.CORS_ORIGINS:
    logger.warning("Credentials cannot be combined with wildcard CORS origins; allow_credentials disabled")
    allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    """Tag logs and error envelopes with the caller's correlation and actor ids."""
    correlation_id = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    actor_id = request.headers.get("X-Actor-ID")
    request.state.correlation_id = correlation_id
    request.state.actor_id = actor_id

    with request_context(correlation_id, actor_id):
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


install_error_handlers(app)

api_v1 = APIRouter(prefix="/api/v1")
for router in (system_router, steps_router, plans_router, job_cards_router, quality_router, materials_router):
    api_v1.include_router(router)
app.include_router(api_v1)
app.include_router(realtime_router)
