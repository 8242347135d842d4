"""Tests for the application-level health check."""
from httpx import ASGITransport, AsyncClient

from app.main import app


async def test_health_before_startup():
    # ASGITransport does not run the lifespan, so the global container stays empty
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://kiosk.test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "starting", "detecting": False}
