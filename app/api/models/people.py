"""API models for registered people."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.domain.entities.identity import Identity


class IdentityResponse(BaseModel):
    """A registered person as returned by the API (embeddings are not exposed)."""
    id: str = Field(..., description="Identity id")
    name: str = Field(..., description="Display name")
    samples: int = Field(..., ge=0, description="Number of enrollment embeddings")
    dimension: Optional[int] = Field(None, description="Embedding length")
    image_ref: Optional[str] = Field(None, description="Profile image reference")
    audio_ref: Optional[str] = Field(None, description="Greeting audio reference")
    video_ref: Optional[str] = Field(None, description="Greeting video reference")
    created_at: datetime = Field(..., description="Registration timestamp")

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            name=identity.name,
            samples=len(identity.embeddings),
            dimension=identity.dimension,
            image_ref=identity.image_ref,
            audio_ref=identity.audio_ref,
            video_ref=identity.video_ref,
            created_at=identity.created_at,
        )


class IdentityUpdateRequest(BaseModel):
    """Request model for PATCH /people/{id}; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="New display name")
    audio_ref: Optional[str] = Field(None, max_length=2048, description="New greeting audio reference")
    video_ref: Optional[str] = Field(None, max_length=2048, description="New greeting video reference")


class GallerySyncResponse(BaseModel):
    """Response model for POST /people/sync."""
    identities: int = Field(..., ge=0, description="Registered people after the reload")
    matchable: int = Field(..., ge=0, description="People with at least one embedding")
