"""Playback value objects."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.domain.entities.identity import Identity


class PlaybackEvent(BaseModel):
    """Request for the front end to greet an identity."""
    identity_id: str = Field(..., description="Greeted identity id")
    name: str = Field(..., description="Greeted identity display name")
    audio_ref: Optional[str] = Field(None, description="Audio to play")
    video_ref: Optional[str] = Field(None, description="Video to play")
    triggered_at: datetime = Field(..., description="Wall-clock time the greeting fired")

    @classmethod
    def from_identity(cls, identity: Identity, triggered_at: datetime) -> "PlaybackEvent":
        return cls(
            identity_id=identity.id,
            name=identity.name,
            audio_ref=identity.audio_ref,
            video_ref=identity.video_ref,
            triggered_at=triggered_at,
        )
