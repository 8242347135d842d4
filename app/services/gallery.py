"""
Gallery service: the registered people, in memory and in the store.

Readers (the detection loop, the API) read `snapshot`, an immutable
`GallerySnapshot`. Writers go through this service, which serializes them
with a lock and applies every change persist-then-publish:

1. Build the new identity and the new snapshot without touching the current one
2. Write the identity to the gallery store
3. Only if the write succeeded, swap `snapshot` to the new one

A failed write therefore leaves the published snapshot exactly as it was and
the error propagates to the caller. A reader always sees either the whole
old gallery or the whole new one, never a partially applied update.
"""
import asyncio
from typing import List, Optional

from app.core.exceptions import IdentityNotFoundError, MediaStoreError
from app.core.logging import get_logger
from app.domain.entities.gallery import GallerySnapshot
from app.domain.entities.identity import Identity, new_identity_id
from app.domain.interfaces.storage.gallery_store import GalleryStore
from app.domain.interfaces.storage.media_store import MediaStore
from app.domain.value_objects.enrollment import EnrollmentResult

logger = get_logger(__name__)

PROFILE_IMAGE_KIND = "profile"
PROFILE_IMAGE_EXTENSION = "jpg"


class GalleryService:
    """Owns the published gallery snapshot and every write to the store.

    Example:
        ```python
        gallery = GalleryService(JsonFileGalleryStore("data/gallery.json"))
        await gallery.load()
        identity = await gallery.enroll(result, audio_ref="greeting.mp3")
        engine.match_all(detections, gallery.snapshot)
        ```
    """

    def __init__(self, store: GalleryStore, media_store: Optional[MediaStore] = None) -> None:
        """Initialize the service with an empty snapshot.

        Args:
            store: Persistent gallery store
            media_store: Where profile snapshots are written, if anywhere
        """
        self.store = store
        self.media_store = media_store
        self._snapshot = GallerySnapshot()
        self._write_lock = asyncio.Lock()

    @property
    def snapshot(self) -> GallerySnapshot:
        """Current published gallery."""
        return self._snapshot

    async def load(self) -> GallerySnapshot:
        """Load every identity from the store and publish them.

        Raises:
            GalleryStoreError: If the store cannot be read; the previous
                snapshot stays published
        """
        async with self._write_lock:
            identities = await self.store.load_all()
            snapshot = GallerySnapshot(identities)
            self._snapshot = snapshot
        logger.info(
            "Gallery loaded",
            identities=len(snapshot),
            matchable=len(snapshot.matchable())
        )
        return snapshot

    async def refresh(self) -> GallerySnapshot:
        """Reload from the store, dropping any in-memory divergence."""
        return await self.load()

    def get(self, identity_id: str) -> Identity:
        """Get a registered identity.

        Raises:
            IdentityNotFoundError: If the id is not in the gallery
        """
        identity = self._snapshot.get(identity_id)
        if identity is None:
            raise IdentityNotFoundError(
                f"Identity not found: {identity_id}",
                details={"identity_id": identity_id}
            )
        return identity

    def list(self) -> List[Identity]:
        return list(self._snapshot)

    async def _publish(self, identity: Identity) -> Identity:
        # Caller holds the write lock
        new_snapshot = self._snapshot.with_identity(identity)
        await self.store.upsert(identity)
        self._snapshot = new_snapshot
        return identity

    async def add(self, identity: Identity) -> Identity:
        """Persist and publish a fully formed identity (insert or replace)."""
        async with self._write_lock:
            await self._publish(identity)
        logger.info("Identity saved", identity_id=identity.id, name=identity.name)
        return identity

    async def enroll(
        self,
        result: EnrollmentResult,
        audio_ref: Optional[str] = None,
        video_ref: Optional[str] = None,
    ) -> Identity:
        """
        Register a new person from a completed enrollment session.

        The profile snapshot is saved to the media store first (when one is
        configured) and deleted again if the identity cannot be persisted.

        Args:
            result: Samples and profile image of the completed session
            audio_ref: Greeting audio reference
            video_ref: Greeting video reference

        Returns:
            The new, published identity

        Raises:
            GalleryStoreError: If the identity cannot be persisted
            MediaStoreError: If the profile image cannot be saved
        """
        identity_id = new_identity_id()
        image_ref = await self._save_profile_image(identity_id, result.profile_image)

        try:
            identity = Identity(
                id=identity_id,
                name=result.name,
                embeddings=result.embeddings,
                audio_ref=audio_ref,
                video_ref=video_ref,
                image_ref=image_ref,
            )
            async with self._write_lock:
                await self._publish(identity)
        except Exception:
            await self._discard_media(image_ref)
            raise

        logger.info(
            "Identity enrolled",
            identity_id=identity.id,
            name=identity.name,
            samples=len(identity.embeddings)
        )
        return identity

    async def update(
        self,
        identity_id: str,
        *,
        name: Optional[str] = None,
        audio_ref: Optional[str] = None,
        video_ref: Optional[str] = None,
    ) -> Identity:
        """
        Change the name or greeting media of an identity.

        Fields left as None keep their current value.

        Raises:
            IdentityNotFoundError: If the id is not in the gallery
            InvalidIdentityError: If the new name is blank
            GalleryStoreError: If the change cannot be persisted
        """
        changes = {
            key: value
            for key, value in (("name", name), ("audio_ref", audio_ref), ("video_ref", video_ref))
            if value is not None
        }
        async with self._write_lock:
            current = self.get(identity_id)
            if not changes:
                return current
            identity = await self._publish(current.evolve(**changes))
        logger.info("Identity updated", identity_id=identity_id, fields=sorted(changes))
        return identity

    async def replace_embeddings(
        self,
        identity_id: str,
        result: EnrollmentResult,
        *,
        audio_ref: Optional[str] = None,
        video_ref: Optional[str] = None,
    ) -> Identity:
        """
        Replace the samples and profile image of an existing identity (re-capture).

        Media refs given here are applied in the same write, so readers see
        either the old identity or the fully re-captured one. Refs left as
        None keep their current value.

        Raises:
            IdentityNotFoundError: If the id is not in the gallery
            GalleryStoreError: If the change cannot be persisted
            MediaStoreError: If the profile image cannot be saved
        """
        current = self.get(identity_id)
        image_ref = await self._save_profile_image(identity_id, result.profile_image)

        try:
            async with self._write_lock:
                current = self.get(identity_id)
                identity = await self._publish(
                    current.evolve(
                        embeddings=result.embeddings,
                        image_ref=image_ref or current.image_ref,
                        audio_ref=audio_ref or current.audio_ref,
                        video_ref=video_ref or current.video_ref,
                    )
                )
        except Exception:
            # A reference equal to the old one was overwritten in place; keep it
            if image_ref and image_ref != current.image_ref:
                await self._discard_media(image_ref)
            raise

        logger.info(
            "Identity samples replaced",
            identity_id=identity_id,
            samples=len(identity.embeddings)
        )
        return identity

    async def remove(self, identity_id: str) -> Identity:
        """
        Delete an identity and then its media.

        Media deletion is best-effort: failures are logged, the identity is
        gone either way.

        Raises:
            IdentityNotFoundError: If the id is not in the gallery
            GalleryStoreError: If the delete cannot be persisted
        """
        async with self._write_lock:
            identity = self.get(identity_id)
            new_snapshot = self._snapshot.without(identity_id)
            existed = await self.store.remove(identity_id)
            self._snapshot = new_snapshot

        if not existed:
            logger.warning("Identity was already absent from the store", identity_id=identity_id)
        logger.info("Identity removed", identity_id=identity_id, name=identity.name)

        await self._discard_media(identity.image_ref)
        return identity

    async def _save_profile_image(self, identity_id: str, image: bytes) -> Optional[str]:
        if self.media_store is None or not image:
            return None
        return await self.media_store.save(
            identity_id, PROFILE_IMAGE_KIND, image, PROFILE_IMAGE_EXTENSION
        )

    async def _discard_media(self, reference: Optional[str]) -> None:
        if self.media_store is None or not reference:
            return
        try:
            await self.media_store.delete(reference)
        except MediaStoreError as e:
            logger.warning("Failed to delete media", reference=reference, error=str(e))
