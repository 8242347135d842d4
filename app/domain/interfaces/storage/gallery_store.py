"""Gallery store interface for registered people."""
from abc import ABC, abstractmethod
from typing import List

from ...entities.identity import Identity


class GalleryStore(ABC):
    """Interface for persisting registered identities."""

    @abstractmethod
    async def load_all(self) -> List[Identity]:
        """
        Load every registered identity.

        Returns:
            List of identities (order is not significant)

        Raises:
            GalleryStoreError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def upsert(self, identity: Identity) -> bool:
        """
        Insert a new identity or replace the stored one with the same id.

        Args:
            identity: Fully formed identity to persist

        Returns:
            True once the identity is persisted

        Raises:
            GalleryStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, identity_id: str) -> bool:
        """
        Delete an identity.

        Args:
            identity_id: Id of the identity to delete

        Returns:
            True if the identity existed and was deleted, False if it was absent

        Raises:
            GalleryStoreError: If the delete fails
        """
        pass
