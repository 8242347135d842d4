"""Registered person entity."""
import uuid
from datetime import datetime
from typing import Any, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.exceptions import InvalidEmbeddingError, InvalidIdentityError
from app.core.utils.clock import utc_now
from app.domain.entities.face import to_embedding


def new_identity_id() -> str:
    """Generate a fresh identity id."""
    return str(uuid.uuid4())


class Identity(BaseModel):
    """A registered person.

    Identities are immutable. Every change produces a new instance through
    `evolve()`, so a reader holding a reference never observes a half-updated
    person (e.g. a new name with the previous embeddings).

    An identity with no embeddings is still being enrolled and is ignored by
    the match engine.
    """
    id: str = Field(default_factory=new_identity_id, description="Unique identity id")
    name: str = Field(..., description="Display name")
    embeddings: Tuple[np.ndarray, ...] = Field(
        default_factory=tuple,
        description="Face embeddings captured at enrollment"
    )
    audio_ref: Optional[str] = Field(None, description="Greeting audio reference (URL or path)")
    video_ref: Optional[str] = Field(None, description="Greeting video reference (URL or path)")
    image_ref: Optional[str] = Field(None, description="Profile image reference (URL or path)")
    created_at: datetime = Field(default_factory=utc_now, description="Registration timestamp")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise InvalidIdentityError("Identity name must not be blank")
        return name

    @field_validator("embeddings", mode="before")
    @classmethod
    def validate_embeddings(cls, v: Any) -> Tuple[np.ndarray, ...]:
        """Convert every sample and check they all share one length."""
        if v is None:
            return ()
        embeddings = tuple(to_embedding(e) for e in v)
        lengths = {e.shape[0] for e in embeddings}
        if len(lengths) > 1:
            raise InvalidEmbeddingError(
                "All embeddings of an identity must have the same length",
                details={"lengths": sorted(lengths)}
            )
        return embeddings

    @property
    def is_matchable(self) -> bool:
        return len(self.embeddings) > 0

    @property
    def has_greeting(self) -> bool:
        """Whether there is any audio or video to play for this person."""
        return bool(self.audio_ref or self.video_ref)

    @property
    def dimension(self) -> Optional[int]:
        return self.embeddings[0].shape[0] if self.embeddings else None

    def evolve(self, **changes: Any) -> "Identity":
        """Return a validated copy with the given fields replaced."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise InvalidIdentityError(f"Unknown identity fields: {sorted(unknown)}")
        return type(self)(**{**dict(self), **changes})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return (
            self.id == other.id
            and self.name == other.name
            and self.audio_ref == other.audio_ref
            and self.video_ref == other.video_ref
            and self.image_ref == other.image_ref
            and self.created_at == other.created_at
            and len(self.embeddings) == len(other.embeddings)
            and all(np.array_equal(a, b) for a, b in zip(self.embeddings, other.embeddings))
        )

    __hash__ = None  # type: ignore[assignment]
