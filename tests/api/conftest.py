"""API fixtures: the v1 router over a container wired with in-memory fakes."""
import httpx
import pytest
from fastapi import FastAPI

from app.api import router
from app.core.config import settings
from app.core.container import ServiceContainer
from app.core.utils.image import encode_jpeg
from app.infrastructure.capture.frame_sources import PushedFrameSource
from app.infrastructure.dependencies import get_container
from tests.fakes import (
    FakeEmbeddingSource,
    InMemoryGalleryStore,
    InMemoryMediaStore,
    make_detection,
    make_frame,
)


@pytest.fixture
def frame_bytes() -> bytes:
    return encode_jpeg(make_frame())


@pytest.fixture
def embedding_source(known_vector) -> FakeEmbeddingSource:
    """Sees the registered person's face, centered, in every frame."""
    return FakeEmbeddingSource(default=[make_detection(known_vector)])


@pytest.fixture
def kiosk_settings(monkeypatch):
    monkeypatch.setattr(settings, "ENROLLMENT_REQUIRED_SAMPLES", 2)
    monkeypatch.setattr(settings, "COOLDOWN_POLICY", "global_exclusive")
    monkeypatch.setattr(settings, "COOLDOWN_WINDOW_MS", 0)
    return settings


@pytest.fixture
async def container(kiosk_settings, embedding_source, gallery_store, media_store):
    container = ServiceContainer()
    await container.initialize(
        gallery_store=gallery_store,
        media_store=media_store,
        frame_source=PushedFrameSource(),
        embedding_source_factory=lambda: embedding_source,
        start_loop=False,
    )
    yield container
    await container.cleanup()


@pytest.fixture
async def client(container):
    app = FastAPI()
    app.include_router(router, prefix=settings.API_V1_STR)
    app.dependency_overrides[get_container] = lambda: container
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://kiosk.test/api/v1/") as client:
        yield client
