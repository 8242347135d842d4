"""API models for the enrollment flow."""
from typing import Optional

from pydantic import BaseModel, Field

from app.domain.value_objects.enrollment import CaptureOutcome, EnrollmentProgress


class EnrollmentStartRequest(BaseModel):
    """Request model for POST /enrollment."""
    name: str = Field(..., min_length=1, max_length=255, description="Name of the person to enroll")


class EnrollmentProgressResponse(BaseModel):
    """Current state of the enrollment session."""
    name: str
    state: str
    captured: int
    required: int
    remaining: int
    aligned: bool
    align_progress: float = Field(..., description="Dwell progress until auto-capture (0-100)")
    instruction: Optional[str] = Field(None, description="Pose hint for the next sample")

    @classmethod
    def from_progress(cls, progress: EnrollmentProgress) -> "EnrollmentProgressResponse":
        return cls(
            name=progress.name,
            state=progress.state.value,
            captured=progress.captured,
            required=progress.required,
            remaining=progress.remaining,
            aligned=progress.aligned,
            align_progress=round(progress.align_progress, 1),
            instruction=progress.instruction,
        )


class CaptureResponse(BaseModel):
    """Response model for POST /enrollment/capture."""
    outcome: CaptureOutcome = Field(..., description="captured, no_face or complete")
    progress: EnrollmentProgressResponse


class EnrollmentCompleteRequest(BaseModel):
    """Request model for POST /enrollment/complete."""
    audio_ref: Optional[str] = Field(None, max_length=2048, description="Greeting audio reference")
    video_ref: Optional[str] = Field(None, max_length=2048, description="Greeting video reference")
    identity_id: Optional[str] = Field(
        None,
        description="Replace the samples of this existing person instead of creating a new one"
    )
