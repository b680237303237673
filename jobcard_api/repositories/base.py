from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

from sqlalchemy import Executable, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository:
    """
    Query helpers shared by the repositories.

    Repositories never commit; the calling service owns the transaction so
    that a card update and its transition row land together.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable):
        return await self.session.execute(statement)

    async def scalars(self, statement: Executable):
        return (await self.session.execute(statement)).scalars()

    async def scalar_one_or_none(self, statement: Executable):
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_by_id(
        self, model: Type[T], entity_id: Any, *, for_update: bool = False, fresh: bool = False
    ) -> Optional[T]:
        """
        Load one row by primary key.

        fresh=True bypasses the identity map so the row reflects other
        sessions' commits; for_update=True also takes a row lock where the
        backend supports it.
        """
        stmt = select(model).where(model.id == entity_id)  # type: ignore[attr-defined]
        if for_update:
            stmt = stmt.with_for_update()
        if for_update or fresh:
            stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def add(self, entity: Any) -> None:
        self.session.add(entity)

    async def flush(self) -> None:
        await self.session.flush()
