"""Tests for persist-then-publish gallery writes."""
import numpy as np
import pytest

from app.core.exceptions import (
    GalleryStoreError,
    IdentityNotFoundError,
    InvalidIdentityError,
    MediaStoreError,
)
from app.domain.value_objects.enrollment import EnrollmentResult
from app.services.gallery import GalleryService
from tests.fakes import InMemoryGalleryStore, InMemoryMediaStore, make_identity, vector

JPEG = b"\xff\xd8fake-jpeg"


def enrollment_result(name: str = "Ana", *embeddings) -> EnrollmentResult:
    embeddings = embeddings or (vector(0.1, 0.2), vector(0.2, 0.1))
    return EnrollmentResult(name=name, embeddings=tuple(embeddings), profile_image=JPEG)


class BrokenMediaStore(InMemoryMediaStore):
    async def delete(self, reference: str) -> bool:
        raise MediaStoreError("disk unplugged")


class TestLoad:

    async def test_publishes_store_contents(self):
        store = InMemoryGalleryStore([make_identity("b", "Bob"), make_identity("a", "Ana", vector(1, 0))])
        service = GalleryService(store)

        snapshot = await service.load()

        assert snapshot is service.snapshot
        assert snapshot.ids() == ["a", "b"]
        assert [i.name for i in service.list()] == ["Ana", "Bob"]

    async def test_failed_load_keeps_previous_snapshot(self, gallery, gallery_store):
        await gallery.add(make_identity("a", "Ana"))
        before = gallery.snapshot
        gallery_store.fail_reads = True

        with pytest.raises(GalleryStoreError):
            await gallery.refresh()

        assert gallery.snapshot is before

    async def test_refresh_picks_up_external_changes(self, gallery, gallery_store):
        gallery_store.identities["x"] = make_identity("x", "Xavier")

        await gallery.refresh()

        assert gallery.get("x").name == "Xavier"


class TestEnroll:

    async def test_persists_and_publishes(self, gallery, gallery_store, media_store):
        identity = await gallery.enroll(enrollment_result(), audio_ref="ana.mp3")

        assert gallery.get(identity.id) == identity
        assert gallery_store.identities[identity.id] == identity
        assert identity.audio_ref == "ana.mp3"
        assert len(identity.embeddings) == 2
        assert identity.image_ref == f"{identity.id}/profile.jpg"
        assert media_store.files[identity.image_ref] == JPEG

    async def test_failed_write_publishes_nothing(self, gallery, gallery_store, media_store):
        before = gallery.snapshot
        gallery_store.fail_writes = True

        with pytest.raises(GalleryStoreError):
            await gallery.enroll(enrollment_result())

        assert gallery.snapshot is before
        assert len(gallery.snapshot) == 0
        assert media_store.files == {}

    async def test_without_media_store(self, gallery_store):
        service = GalleryService(gallery_store)

        identity = await service.enroll(enrollment_result())

        assert identity.image_ref is None


class TestUpdate:

    async def test_changes_only_given_fields(self, gallery):
        ana = await gallery.add(make_identity("a", "Ana", vector(1, 0), audio_ref="old.mp3", video_ref="v.mp4"))

        updated = await gallery.update("a", audio_ref="new.mp3")

        assert updated.audio_ref == "new.mp3"
        assert updated.video_ref == "v.mp4"
        assert updated.name == "Ana"
        assert gallery.get("a") is updated
        assert ana.audio_ref == "old.mp3"

    async def test_no_changes_is_a_no_op(self, gallery, gallery_store):
        ana = await gallery.add(make_identity("a", "Ana"))
        writes = gallery_store.writes

        assert await gallery.update("a") is ana
        assert gallery_store.writes == writes

    async def test_unknown_identity(self, gallery):
        with pytest.raises(IdentityNotFoundError):
            await gallery.update("ghost", name="Casper")

    async def test_blank_name_is_rejected(self, gallery):
        await gallery.add(make_identity("a", "Ana"))

        with pytest.raises(InvalidIdentityError):
            await gallery.update("a", name="  ")
        assert gallery.get("a").name == "Ana"

    async def test_failed_write_keeps_old_identity(self, gallery, gallery_store):
        await gallery.add(make_identity("a", "Ana"))
        gallery_store.fail_writes = True

        with pytest.raises(GalleryStoreError):
            await gallery.update("a", name="Ana Maria")

        assert gallery.get("a").name == "Ana"


class TestReplaceEmbeddings:

    async def test_replaces_samples_and_image(self, gallery, media_store):
        await gallery.add(make_identity("a", "Ana", vector(1, 0), audio_ref="ana.mp3"))

        identity = await gallery.replace_embeddings("a", enrollment_result("ignored", vector(0, 1)))

        assert identity.name == "Ana"
        assert identity.audio_ref == "ana.mp3"
        assert len(identity.embeddings) == 1
        assert np.array_equal(identity.embeddings[0], vector(0, 1))
        assert identity.image_ref == "a/profile.jpg"
        assert "a/profile.jpg" in media_store.files

    async def test_unknown_identity(self, gallery, media_store):
        with pytest.raises(IdentityNotFoundError):
            await gallery.replace_embeddings("ghost", enrollment_result())
        assert media_store.files == {}

    async def test_failed_write_discards_new_image(self, gallery, gallery_store, media_store):
        await gallery.add(make_identity("a", "Ana", vector(1, 0)))
        gallery_store.fail_writes = True

        with pytest.raises(GalleryStoreError):
            await gallery.replace_embeddings("a", enrollment_result())

        assert media_store.files == {}
        assert np.array_equal(gallery.get("a").embeddings[0], vector(1, 0))

    async def test_media_refs_change_in_the_same_write(self, gallery, gallery_store):
        await gallery.add(make_identity("a", "Ana", vector(1, 0), audio_ref="old.mp3"))
        writes = gallery_store.writes

        identity = await gallery.replace_embeddings(
            "a", enrollment_result("Ana", vector(0, 1)), audio_ref="new.mp3", video_ref="new.mp4"
        )

        assert gallery_store.writes == writes + 1
        assert identity.audio_ref == "new.mp3"
        assert identity.video_ref == "new.mp4"
        assert gallery_store.identities["a"] == identity

    async def test_failed_write_with_media_refs_changes_nothing(self, gallery, gallery_store):
        await gallery.add(make_identity("a", "Ana", vector(1, 0), audio_ref="old.mp3"))
        gallery_store.fail_writes = True

        with pytest.raises(GalleryStoreError):
            await gallery.replace_embeddings(
                "a", enrollment_result("Ana", vector(0, 1)), audio_ref="new.mp3"
            )

        current = gallery.get("a")
        assert current.audio_ref == "old.mp3"
        assert np.array_equal(current.embeddings[0], vector(1, 0))


class TestRemove:

    async def test_removes_identity_and_media(self, gallery, gallery_store, media_store):
        identity = await gallery.enroll(enrollment_result())

        removed = await gallery.remove(identity.id)

        assert removed == identity
        assert identity.id not in gallery.snapshot
        assert identity.id not in gallery_store.identities
        assert media_store.files == {}

    async def test_unknown_identity(self, gallery):
        with pytest.raises(IdentityNotFoundError):
            await gallery.remove("ghost")

    async def test_failed_write_keeps_identity(self, gallery, gallery_store):
        await gallery.add(make_identity("a", "Ana"))
        gallery_store.fail_writes = True

        with pytest.raises(GalleryStoreError):
            await gallery.remove("a")

        assert "a" in gallery.snapshot

    async def test_media_failure_does_not_block_removal(self, gallery_store):
        service = GalleryService(gallery_store, BrokenMediaStore())
        await service.load()
        identity = await service.enroll(enrollment_result())

        await service.remove(identity.id)

        assert identity.id not in service.snapshot

    async def test_record_already_gone_from_store(self, gallery, gallery_store):
        await gallery.add(make_identity("a", "Ana"))
        del gallery_store.identities["a"]

        await gallery.remove("a")

        assert "a" not in gallery.snapshot
