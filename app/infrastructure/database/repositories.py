"""Database repositories for registered people."""
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models.storage.identity import IdentityRecord
from app.infrastructure.database.models import RegisteredPerson


class RegisteredPersonRepository:
    """Repository for registered people operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def list_all(self) -> List[RegisteredPerson]:
        """Get every registered person, most recently created first.

        Returns:
            List[RegisteredPerson]: All rows
        """
        stmt = select(RegisteredPerson).order_by(RegisteredPerson.created_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, person_id: str) -> Optional[RegisteredPerson]:
        """Get a registered person by id.

        Args:
            person_id: Identity id

        Returns:
            Optional[RegisteredPerson]: Found row or None
        """
        return await self._session.get(RegisteredPerson, person_id)

    async def upsert(self, record: IdentityRecord) -> RegisteredPerson:
        """Insert a person or overwrite the row with the same id.

        Args:
            record: Serialized identity

        Returns:
            RegisteredPerson: Stored row
        """
        person = await self.get(record.id)
        if person is None:
            person = RegisteredPerson(id=record.id, created_at=record.created_at)
            self._session.add(person)
        person.name = record.name
        person.descriptors = record.descriptors
        person.image_url = record.image_url
        person.sound_url = record.sound_url
        person.video_url = record.video_url
        await self._session.flush()
        return person

    async def delete(self, person_id: str) -> bool:
        """Delete a person by id.

        Args:
            person_id: Identity id

        Returns:
            bool: True if a row was deleted
        """
        stmt = delete(RegisteredPerson).where(RegisteredPerson.id == person_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0
