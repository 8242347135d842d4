"""Media store interface for profile images and greeting media."""
from abc import ABC, abstractmethod


class MediaStore(ABC):
    """Interface for storing binary media attached to identities."""

    @abstractmethod
    async def save(self, identity_id: str, kind: str, data: bytes, extension: str) -> str:
        """
        Store media for an identity.

        Args:
            identity_id: Owner identity id
            kind: Media kind (e.g. "profile", "sound", "video")
            data: Raw file content
            extension: File extension without dot (e.g. "jpg")

        Returns:
            Reference to the stored media (URL or path)

        Raises:
            MediaStoreError: If the media cannot be stored
        """
        pass

    @abstractmethod
    async def delete(self, reference: str) -> bool:
        """
        Delete media previously returned by `save()`.

        Returns:
            True if something was deleted, False if the reference is not managed here

        Raises:
            MediaStoreError: If the delete fails
        """
        pass
