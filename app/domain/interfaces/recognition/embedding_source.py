"""Embedding source interface."""
from abc import ABC, abstractmethod
from typing import List

import numpy as np

from ...entities.face import Detection


class EmbeddingSource(ABC):
    """Interface for the face detection and embedding model."""

    @abstractmethod
    async def detect_faces(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect faces in a frame and compute their embeddings.

        Args:
            frame: Image array (height x width x channels, BGR)

        Returns:
            List of detections, one per face. An empty list means no face was
            found; that is a normal outcome, not an error.

        Raises:
            EmbeddingSourceError: If the model fails on this frame
            InvalidFrameError: If the frame is missing or malformed
        """
        pass
