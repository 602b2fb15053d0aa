from __future__ import annotations

from typing import Any, Iterable, Optional

from sqlalchemy import Executable, func, select
from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Note:
      Tenant isolation is enforced by the ORM session hooks. Transactions are
      owned by services: repositories flush, services commit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        if params:
            return await self.session.execute(statement, params)
        return await self.session.execute(statement)

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def count(self, statement: Executable) -> int:
        """Count the rows a select statement would return."""
        stmt = select(func.count()).select_from(statement.order_by(None).subquery())
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def flush(self) -> None:
        """Flush pending changes so generated values and constraints are applied."""
        await self.session.flush()

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)

    async def delete(self, entity: Any) -> None:
        """Mark an entity for deletion."""
        await self.session.delete(entity)
