"""Tests for the registered people endpoints."""
import pytest

from tests.fakes import make_identity, vector


@pytest.fixture
async def ana(container):
    return await container.gallery_service.add(
        make_identity("ana", "Ana", vector(0.1, 0.2), audio_ref="ana.mp3")
    )


class TestPeopleApi:

    async def test_list(self, client, ana, container):
        await container.gallery_service.add(make_identity("bob", "Bob"))

        response = await client.get("/people")

        assert response.status_code == 200
        body = response.json()
        assert [p["name"] for p in body] == ["Ana", "Bob"]
        assert body[0]["samples"] == 1
        assert body[0]["dimension"] == 2
        assert "embeddings" not in body[0]

    async def test_get(self, client, ana):
        response = await client.get("/people/ana")

        assert response.status_code == 200
        assert response.json()["audio_ref"] == "ana.mp3"

    async def test_get_unknown(self, client):
        assert (await client.get("/people/ghost")).status_code == 404

    async def test_patch(self, client, ana, container, gallery_store):
        response = await client.patch("/people/ana", json={"name": "Ana Maria", "video_ref": "ana.mp4"})

        assert response.status_code == 200
        assert response.json()["name"] == "Ana Maria"
        assert response.json()["audio_ref"] == "ana.mp3"
        assert gallery_store.identities["ana"].video_ref == "ana.mp4"
        assert container.gallery_service.get("ana").name == "Ana Maria"

    async def test_patch_blank_name(self, client, ana):
        response = await client.patch("/people/ana", json={"name": "   "})

        assert response.status_code == 400

    async def test_patch_store_failure(self, client, ana, gallery_store, container):
        gallery_store.fail_writes = True

        response = await client.patch("/people/ana", json={"name": "Ana Maria"})

        assert response.status_code == 503
        assert container.gallery_service.get("ana").name == "Ana"

    async def test_delete(self, client, ana, container):
        response = await client.delete("/people/ana")

        assert response.status_code == 204
        assert "ana" not in container.gallery_service.snapshot
        assert (await client.delete("/people/ana")).status_code == 404

    async def test_sync(self, client, ana, gallery_store):
        gallery_store.identities["bob"] = make_identity("bob", "Bob")

        response = await client.post("/people/sync")

        assert response.status_code == 200
        assert response.json() == {"identities": 2, "matchable": 1}

    async def test_sync_store_failure(self, client, gallery_store):
        gallery_store.fail_reads = True

        assert (await client.post("/people/sync")).status_code == 503
