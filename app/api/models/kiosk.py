"""API models for the kiosk status and playback endpoints."""
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.value_objects.recognition import DetectionLogEntry


class KioskStatusResponse(BaseModel):
    """Response model for GET /kiosk/status."""
    running: bool = Field(..., description="Whether the detection loop is running")
    model_state: str = Field(..., description="unloaded, loading, ready or failed")
    last_error: Optional[str] = Field(None, description="Last detection loop error")
    cooldown_policy: str
    cooldown_window_ms: float
    greeting_mode: str = Field(..., description="recognized or any_face")
    identities: int = Field(..., ge=0)
    matchable: int = Field(..., ge=0)
    frames_processed: int = Field(..., ge=0)
    total_detections: int = Field(..., ge=0, description="Recognised faces since start")
    pending_playbacks: int = Field(..., ge=0)


class DetectionLogResponse(BaseModel):
    """Response model for GET /kiosk/detections."""
    entries: List[DetectionLogEntry] = Field(..., description="Recent recognitions, newest first")
    total_detections: int = Field(..., ge=0)
