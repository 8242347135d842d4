"""Transaction scope for gallery database operations."""
from types import TracebackType
from typing import Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.infrastructure.database.repositories import RegisteredPersonRepository

logger = get_logger(__name__)


class UnitOfWork:
    """One session and one transaction around the people repository.

    The session is opened on enter and always closed on exit. A block that
    finishes normally is committed; one that raises is rolled back and the
    exception propagates.

    Example:
        ```python
        async with UnitOfWork(session_factory) as uow:
            await uow.people.upsert(record)
        ```
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None
        self.people: Optional[RegisteredPersonRepository] = None

    async def __aenter__(self) -> "UnitOfWork":
        self._session = self._session_factory()
        self.people = RegisteredPersonRepository(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        try:
            if exc_type is None:
                await self.commit()
            else:
                logger.warning("Rolling back gallery transaction", error=str(exc_val))
                await self.rollback()
        finally:
            await self._session.close()
            self._session = None
            self.people = None

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
