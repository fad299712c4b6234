"""Unit of work: one transaction around a group of repository calls."""

from types import TracebackType
from typing import Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """Transaction boundary for a set of writes.

    Nothing is persisted unless ``commit()`` is called inside the block. Leaving
    the block on an exception (cancellation included) or without committing
    rolls the session back.

    Usage:
        async with UnitOfWork(db) as uow:
            await repo.write_a(uow.session, ...)
            await repo.write_b(uow.session, ...)
            await uow.commit()
    """

    def __init__(self, session: AsyncSession) -> None:
        """Bind the unit of work to a session."""
        self.session = session
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        if exc_type is not None or not self._committed:
            await self.rollback()

    async def commit(self) -> None:
        """Commit the transaction."""
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll the transaction back."""
        await self.session.rollback()
