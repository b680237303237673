from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional

from pydantic import BaseModel
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from jobcard_api.schemas.realtime import DomainEvent
from jobcard_api.services.events import EventPublisher, event_publisher
from jobcard_api.workflow.clock import Clock, SystemClock
from jobcard_api.workflow.errors import ConcurrentModificationError, TransientError, WorkflowError
from jobcard_api.workflow.steps import StepCatalog, get_step_catalog

logger = logging.getLogger(__name__)

IntegrityMapper = Callable[[IntegrityError], WorkflowError]


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services keep business logic and orchestration, delegating data access
    to repositories. Every mutation runs inside unit_of_work(), which owns the
    commit and publishes queued domain events once the commit succeeds.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Optional[Clock] = None,
        catalog: Optional[StepCatalog] = None,
        publisher: Optional[EventPublisher] = None,
    ) -> None:
        self.session = session
        self.clock = clock or SystemClock()
        self.catalog = catalog or get_step_catalog()
        self.publisher = publisher or event_publisher
        self._pending_events: List[DomainEvent] = []
        self._in_unit = False

    # PUBLIC_INTERFACE
    @asynccontextmanager
    async def unit_of_work(
        self,
        operation: str,
        *,
        entity_type: str = "entity",
        entity_id: Any = None,
        on_integrity: Optional[IntegrityMapper] = None,
    ) -> AsyncIterator[None]:
        """
        Run the enclosed block as one transaction.

        Commits on success and rolls back on any error. Store-level failures
        are translated into the workflow error taxonomy:
          - StaleDataError (lost optimistic-lock race) -> ConcurrentModificationError
          - IntegrityError -> on_integrity(exc), or ConcurrentModificationError
          - OperationalError / InterfaceError / invalidated connection / timeout -> TransientError
        Nested calls join the outer unit.
        """
        if self._in_unit:
            yield
            return

        self._in_unit = True
        try:
            yield
            await self.session.commit()
        except WorkflowError as exc:
            await self._rollback()
            logger.warning("%s rejected: %s", operation, exc.message)
            raise
        except StaleDataError as exc:
            await self._rollback()
            logger.warning("%s lost a concurrent update on %s %s", operation, entity_type, entity_id)
            raise ConcurrentModificationError(entity_type, entity_id) from exc
        except IntegrityError as exc:
            await self._rollback()
            mapped = on_integrity(exc) if on_integrity else ConcurrentModificationError(
                entity_type, entity_id, "changed by a conflicting write"
            )
            logger.warning("%s violated a constraint: %s", operation, mapped.message)
            raise mapped from exc
        except (OperationalError, InterfaceError) as exc:
            await self._rollback()
            logger.error("%s failed talking to the database: %s", operation, exc.orig)
            raise TransientError(operation, exc) from exc
        except DBAPIError as exc:
            await self._rollback()
            if exc.connection_invalidated:
                logger.error("%s lost its database connection", operation)
                raise TransientError(operation, exc) from exc
            raise
        except (TimeoutError, asyncio.TimeoutError) as exc:
            await self._rollback()
            logger.error("%s timed out", operation)
            raise TransientError(operation, exc) from exc
        except BaseException:
            await self._rollback()
            raise
        finally:
            self._in_unit = False

        events, self._pending_events = self._pending_events, []
        await self.publisher.publish_all(events)

    async def _rollback(self) -> None:
        self._pending_events = []
        try:
            await self.session.rollback()
        except Exception:
            logger.exception("Rollback failed")

    def emit(
        self,
        event_type: str,
        entity: BaseModel | dict,
        *,
        plan_id: Any = None,
        actor_id: Optional[str] = None,
    ) -> None:
        """Queue a domain event; it is published only if the unit of work commits."""
        payload = entity.model_dump(mode="json") if isinstance(entity, BaseModel) else dict(entity)
        self._pending_events.append(
            DomainEvent(type=event_type, entity=payload, plan_id=plan_id, actor_id=actor_id, at=self.clock.now())
        )

    def share_context(self) -> dict:
        """Constructor kwargs that make a collaborating service use the same clock/catalog/publisher."""
        return {"clock": self.clock, "catalog": self.catalog, "publisher": self.publisher}
