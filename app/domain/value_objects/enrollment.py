"""Enrollment value objects."""
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class EnrollmentState(str, Enum):
    AWAITING_FACE = "awaiting_face"
    ALIGNING = "aligning"
    CAPTURING = "capturing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class CaptureOutcome(str, Enum):
    """Result of one capture attempt."""
    CAPTURED = "captured"
    NO_FACE = "no_face"
    COMPLETE = "complete"


class EnrollmentProgress(BaseModel):
    """Snapshot of an enrollment session, suitable for driving a capture UI."""
    name: str = Field(..., description="Name of the person being enrolled")
    state: EnrollmentState = Field(..., description="Current sequencer state")
    captured: int = Field(..., ge=0, description="Samples captured so far")
    required: int = Field(..., ge=1, description="Samples required to complete")
    aligned: bool = Field(False, description="Whether the face is centered in the frame")
    align_progress: float = Field(0.0, ge=0.0, le=100.0, description="Dwell progress until auto-capture")
    instruction: Optional[str] = Field(None, description="Pose hint for the next sample")

    @property
    def remaining(self) -> int:
        return max(self.required - self.captured, 0)


class EnrollmentResult(BaseModel):
    """Output of a completed session, ready to become an identity."""
    name: str = Field(..., description="Name of the enrolled person")
    embeddings: Tuple[np.ndarray, ...] = Field(..., description="Captured embeddings")
    profile_image: bytes = Field(..., description="First captured snapshot (JPEG)")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)
