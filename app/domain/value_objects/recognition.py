"""Recognition value objects."""
import math
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.entities.face import BoundingBox


class MatchResult(BaseModel):
    """Outcome of matching one detected face against the gallery."""
    identity_id: Optional[str] = Field(None, description="Matched identity id, None when unmatched")
    identity_name: Optional[str] = Field(None, description="Matched identity display name")
    distance: float = Field(math.inf, description="Smallest L2 distance found over the gallery")
    confidence: float = Field(0.0, ge=0.0, le=100.0, description="(1 - distance) * 100, clamped")
    bounding_box: Optional[BoundingBox] = Field(None, description="Detected face location")

    @property
    def is_match(self) -> bool:
        return self.identity_id is not None


class FrameResult(BaseModel):
    """Everything one detection tick produced."""
    timestamp_ms: float = Field(..., description="Monotonic time the tick was evaluated at")
    matches: List[MatchResult] = Field(default_factory=list, description="Results in detection order")
    triggered: List[str] = Field(default_factory=list, description="Identity ids greeted this tick")


class DetectionLogEntry(BaseModel):
    """A recognised face shown in the recent detections log."""
    identity_id: str = Field(..., description="Matched identity id")
    identity_name: Optional[str] = Field(None, description="Matched identity display name")
    confidence: float = Field(..., description="Match confidence (0-100)")
    detected_at: datetime = Field(..., description="Wall-clock time of the detection")
