"""Tests for the enrollment endpoints."""
from app.services.model_handle import EmbeddingModelHandle
from tests.fakes import make_identity, unit_vector


class TestEnrollmentApi:

    async def test_manual_enrollment(self, client, container, frame_bytes, media_store):
        response = await client.post("/enrollment", json={"name": "Carla"})
        assert response.status_code == 201
        assert response.json()["state"] == "awaiting_face"
        assert response.json()["instruction"] == "Look straight at the camera"

        for expected in (1, 2):
            response = await client.post("/enrollment/capture", content=frame_bytes)
            assert response.status_code == 200
            assert response.json()["outcome"] == "captured"
            assert response.json()["progress"]["captured"] == expected
        assert response.json()["progress"]["state"] == "complete"

        response = await client.post("/enrollment/complete", json={"audio_ref": "carla.mp3"})
        assert response.status_code == 201
        person = response.json()
        assert person["name"] == "Carla"
        assert person["samples"] == 2
        assert person["image_ref"] in media_store.files
        assert container.gallery_service.get(person["id"]).audio_ref == "carla.mp3"

        assert (await client.get("/enrollment")).status_code == 409

    async def test_progress(self, client, frame_bytes):
        await client.post("/enrollment", json={"name": "Carla"})

        response = await client.post("/enrollment/frames", content=frame_bytes)

        assert response.status_code == 200
        assert response.json()["state"] == "aligning"
        assert response.json()["aligned"] is True
        assert response.json()["remaining"] == 2
        assert (await client.get("/enrollment")).json()["name"] == "Carla"

    async def test_blank_name(self, client):
        response = await client.post("/enrollment", json={"name": ""})

        assert response.status_code == 422

    async def test_whitespace_name(self, client):
        response = await client.post("/enrollment", json={"name": "   "})

        assert response.status_code == 400

    async def test_no_session(self, client, frame_bytes):
        assert (await client.get("/enrollment")).status_code == 409
        assert (await client.post("/enrollment/frames", content=frame_bytes)).status_code == 409
        assert (await client.delete("/enrollment")).status_code == 409

    async def test_undecodable_frame(self, client):
        await client.post("/enrollment", json={"name": "Carla"})

        response = await client.post("/enrollment/capture", content=b"not an image")

        assert response.status_code == 400

    async def test_complete_too_early(self, client, frame_bytes):
        await client.post("/enrollment", json={"name": "Carla"})
        await client.post("/enrollment/capture", content=frame_bytes)

        assert (await client.post("/enrollment/complete", json={})).status_code == 409

    async def test_recapture_unknown_identity(self, client, frame_bytes):
        await client.post("/enrollment", json={"name": "Carla"})
        await client.post("/enrollment/capture", content=frame_bytes)
        await client.post("/enrollment/capture", content=frame_bytes)

        response = await client.post("/enrollment/complete", json={"identity_id": "ghost"})

        assert response.status_code == 404

    async def test_recapture_existing_identity(self, client, container, frame_bytes):
        await container.gallery_service.add(make_identity("ana", "Ana", unit_vector(128, seed=5)))
        await client.post("/enrollment", json={"name": "Ana"})
        await client.post("/enrollment/capture", content=frame_bytes)
        await client.post("/enrollment/capture", content=frame_bytes)

        response = await client.post("/enrollment/complete", json={"identity_id": "ana"})

        assert response.status_code == 201
        assert response.json()["id"] == "ana"
        assert response.json()["samples"] == 2
        assert len(container.gallery_service.snapshot) == 1

    async def test_cancel(self, client, container, frame_bytes):
        await client.post("/enrollment", json={"name": "Carla"})
        await client.post("/enrollment/capture", content=frame_bytes)

        assert (await client.delete("/enrollment")).status_code == 204
        assert not container.enrollment_service.is_active
        assert len(container.gallery_service.snapshot) == 0
        assert container.model_handle.refcount == 0

    async def test_model_unavailable(self, client, container):
        def broken():
            raise RuntimeError("no model files")

        container.enrollment_service.model = EmbeddingModelHandle(broken)

        response = await client.post("/enrollment", json={"name": "Carla"})

        assert response.status_code == 503
