"""Shared fixtures for the kiosk test suite."""
import numpy as np
import pytest

from app.services.gallery import GalleryService
from tests.fakes import InMemoryGalleryStore, InMemoryMediaStore, make_frame, unit_vector


@pytest.fixture
def frame() -> np.ndarray:
    """640x480 black frame."""
    return make_frame()


@pytest.fixture
def known_vector() -> np.ndarray:
    """Embedding of a registered person."""
    return unit_vector(128, seed=42)


@pytest.fixture
def stranger_vector() -> np.ndarray:
    """Embedding of somebody nobody registered (distance ~1.4 from known_vector)."""
    return unit_vector(128, seed=777)


@pytest.fixture
def gallery_store() -> InMemoryGalleryStore:
    return InMemoryGalleryStore()


@pytest.fixture
def media_store() -> InMemoryMediaStore:
    return InMemoryMediaStore()


@pytest.fixture
async def gallery(gallery_store, media_store) -> GalleryService:
    """Loaded gallery service over in-memory stores."""
    service = GalleryService(gallery_store, media_store)
    await service.load()
    return service
