from typing import Any, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository:
    """Holds the ``AsyncSession`` shared by the repositories of one unit of work.

    A draft save stages the form row and its whole question/option
    subtree through two repositories built on the same session, so the
    commit (or rollback) covers all of it at once.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _add(self, instance: ModelT, refresh: bool = False) -> ModelT:
        """Stage *instance*; with *refresh*, flush and load server defaults."""
        self._db.add(instance)
        if refresh:
            await self._db.flush()
            await self._db.refresh(instance)
        return instance

    async def _one_or_none(self, query: Any) -> Optional[Any]:
        result = await self._db.execute(query)
        return result.scalar_one_or_none()

    async def flush(self) -> None:
        await self._db.flush()

    async def commit(self) -> None:
        await self._db.commit()

    async def rollback(self) -> None:
        await self._db.rollback()
