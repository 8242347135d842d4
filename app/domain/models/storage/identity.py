"""Storage-specific identity models."""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.utils.clock import utc_now
from app.domain.entities.identity import Identity


class IdentityRecord(BaseModel):
    """Serialized identity shared by the gallery store adapters.

    Field names follow the registered_people schema: embeddings are
    stored as `descriptors` (arrays of floats) and media as URLs.
    """
    id: str = Field(..., description="Identity id")
    name: str = Field(..., description="Display name")
    descriptors: List[List[float]] = Field(default_factory=list, description="Embeddings as float arrays")
    image_url: Optional[str] = Field(None, description="Profile image reference")
    sound_url: Optional[str] = Field(None, description="Greeting audio reference")
    video_url: Optional[str] = Field(None, description="Greeting video reference")
    created_at: datetime = Field(default_factory=utc_now, description="Registration timestamp")

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def upgrade_legacy_descriptor(cls, data: Any) -> Any:
        """Accept records written with a single `descriptor` field."""
        if isinstance(data, dict) and "descriptors" not in data and data.get("descriptor"):
            data = dict(data)
            data["descriptors"] = [data.pop("descriptor")]
        return data

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityRecord":
        """Create a storage record from an identity entity."""
        return cls(
            id=identity.id,
            name=identity.name,
            descriptors=[embedding.tolist() for embedding in identity.embeddings],
            image_url=identity.image_ref,
            sound_url=identity.audio_ref,
            video_url=identity.video_ref,
            created_at=identity.created_at,
        )

    def to_identity(self) -> Identity:
        """Convert back to the domain entity (validates the embeddings)."""
        return Identity(
            id=self.id,
            name=self.name,
            embeddings=self.descriptors,
            image_ref=self.image_url or None,
            audio_ref=self.sound_url or None,
            video_ref=self.video_url or None,
            created_at=self.created_at,
        )
