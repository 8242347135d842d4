"""Core face domain entities."""
from typing import Any, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.exceptions import InvalidEmbeddingError


def to_embedding(value: Any) -> np.ndarray:
    """Validate and convert a raw vector into a read-only 1D float array.

    Args:
        value: numpy array or sequence of numbers

    Returns:
        np.ndarray: Immutable copy of the embedding

    Raises:
        InvalidEmbeddingError: If the vector is not 1D, empty or contains NaN/inf
    """
    try:
        embedding = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidEmbeddingError(f"Embedding is not numeric: {e}")

    if embedding.ndim != 1:
        raise InvalidEmbeddingError(
            "Embedding must be a 1D vector",
            details={"shape": list(embedding.shape)}
        )
    if embedding.size == 0:
        raise InvalidEmbeddingError("Embedding is empty")
    if not np.all(np.isfinite(embedding)):
        raise InvalidEmbeddingError("Embedding contains NaN or infinite values")

    embedding.setflags(write=False)
    return embedding


class BoundingBox(BaseModel):
    """Face bounding box in pixel coordinates of the source frame."""
    x: float = Field(..., description="Left coordinate of the bounding box")
    y: float = Field(..., description="Top coordinate of the bounding box")
    width: float = Field(..., ge=0, description="Width of the bounding box")
    height: float = Field(..., ge=0, description="Height of the bounding box")

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height


class Detection(BaseModel):
    """A single face found by the embedding source in one frame."""
    bounding_box: BoundingBox = Field(..., description="Bounding box coordinates")
    embedding: np.ndarray = Field(..., description="Face embedding vector")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Detector score")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding(cls, v: Any) -> np.ndarray:
        """Validate and convert embedding to numpy array if needed."""
        return to_embedding(v)
