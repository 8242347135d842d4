"""SQLAlchemy implementation of the gallery store."""
from datetime import timezone
from pathlib import Path
from typing import List

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.exceptions import GalleryStoreError, KioskError
from app.core.logging import get_logger
from app.domain.entities.identity import Identity
from app.domain.interfaces.storage.gallery_store import GalleryStore
from app.domain.models.storage.identity import IdentityRecord
from app.infrastructure.database.models import Base, RegisteredPerson
from app.infrastructure.database.session import (
    create_engine,
    create_session_factory,
)
from app.infrastructure.database.unit_of_work import UnitOfWork

logger = get_logger(__name__)


def _to_record(person: RegisteredPerson) -> IdentityRecord:
    created_at = person.created_at
    # SQLite hands timestamps back without their zone
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return IdentityRecord(
        id=person.id,
        name=person.name,
        descriptors=person.descriptors or [],
        image_url=person.image_url,
        sound_url=person.sound_url,
        video_url=person.video_url,
        created_at=created_at,
    )


class SqlAlchemyGalleryStore(GalleryStore):
    """Gallery persisted in the `registered_people` table.

    Each operation runs in its own unit of work, committed on success and
    rolled back on failure. Driver errors surface as `GalleryStoreError`.

    Example:
        ```python
        store = SqlAlchemyGalleryStore.from_url("sqlite+aiosqlite:///data/gallery.db")
        await store.init_schema()
        identities = await store.load_all()
        ```
    """

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize the store.

        Args:
            engine: Async engine for the gallery database
        """
        self.engine = engine
        self._session_factory: async_sessionmaker[AsyncSession] = create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlAlchemyGalleryStore":
        return cls(create_engine(database_url, echo=echo))

    async def init_schema(self) -> None:
        """Create the gallery tables if they do not exist."""
        url = self.engine.url
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise GalleryStoreError(f"Failed to create gallery schema: {e}")
        logger.info("Gallery schema ready", url=self.engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def load_all(self) -> List[Identity]:
        try:
            async with UnitOfWork(self._session_factory) as uow:
                people = await uow.people.list_all()
                records = [_to_record(person) for person in people]
        except SQLAlchemyError as e:
            raise GalleryStoreError(f"Failed to load gallery: {e}")

        try:
            return [record.to_identity() for record in records]
        except (KioskError, ValidationError) as e:
            raise GalleryStoreError(f"Gallery database contains an invalid identity: {e}")

    async def upsert(self, identity: Identity) -> bool:
        record = IdentityRecord.from_identity(identity)
        try:
            async with UnitOfWork(self._session_factory) as uow:
                await uow.people.upsert(record)
        except SQLAlchemyError as e:
            raise GalleryStoreError(
                f"Failed to store identity: {e}",
                details={"identity_id": identity.id}
            )
        logger.debug("Stored identity", identity_id=identity.id)
        return True

    async def remove(self, identity_id: str) -> bool:
        try:
            async with UnitOfWork(self._session_factory) as uow:
                deleted = await uow.people.delete(identity_id)
        except SQLAlchemyError as e:
            raise GalleryStoreError(
                f"Failed to delete identity: {e}",
                details={"identity_id": identity_id}
            )
        if deleted:
            logger.debug("Deleted identity", identity_id=identity_id)
        return deleted
