"""API v1 router initialization."""
from fastapi import APIRouter

from .enrollment import router as enrollment_router
from .kiosk import router as kiosk_router
from .people import router as people_router

# Create v1 router
router = APIRouter()

# Registered people management
router.include_router(
    people_router,
    prefix="/people",
    tags=["people"]
)

# Multi-sample enrollment flow
router.include_router(
    enrollment_router,
    prefix="/enrollment",
    tags=["enrollment"]
)

# Detection status and greeting playback
router.include_router(
    kiosk_router,
    prefix="/kiosk",
    tags=["kiosk"]
)
