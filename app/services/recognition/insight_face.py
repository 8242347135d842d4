"""
InsightFace-based implementation of the embedding source.

This module provides a concrete implementation of the embedding source using
the InsightFace library. It detects faces in camera frames and extracts one
normalized embedding per face.

Key Features:
    - Face detection with confidence filtering
    - Normalized (unit length) 512-d face embeddings
    - Pixel-space bounding boxes
    - Model inference off the event loop

Example:
    ```python
    source = InsightFaceEmbeddingSource()
    detections = await source.detect_faces(frame)
    ```

Note:
    This implementation uses CPU inference by default. For GPU support,
    pass providers=["CUDAExecutionProvider", "CPUExecutionProvider"].
"""
import asyncio
from typing import Any, List, Optional, Sequence

import numpy as np
from insightface.app import FaceAnalysis
from insightface.app.common import Face as InsightFace

from app.core.config import settings
from app.core.exceptions import EmbeddingSourceError, ModelLoadError
from app.core.logging import get_logger
from app.core.utils.image import frame_size
from app.domain.entities.face import BoundingBox, Detection
from app.domain.interfaces.recognition.embedding_source import EmbeddingSource

logger = get_logger(__name__)


class InsightFaceEmbeddingSource(EmbeddingSource):
    """
    InsightFace-based implementation of the embedding source.

    Attributes:
        model: InsightFace model instance for face analysis
        max_faces: Maximum number of faces returned per frame
        min_confidence: Detections scoring below this are dropped

    Performance Characteristics:
        - Detection time: ~50ms per face
        - Memory usage: ~1-2GB
    """

    def __init__(
        self,
        model_name: str = settings.MODEL_NAME,
        det_size: int = settings.MODEL_DET_SIZE,
        max_faces: int = settings.MAX_FACES_PER_FRAME,
        min_confidence: float = settings.MIN_FACE_CONFIDENCE,
        providers: Optional[Sequence[str]] = None,
    ) -> None:
        """Initialize InsightFace model.

        Raises:
            ModelLoadError: If the model files cannot be loaded
        """
        self.max_faces = max_faces
        self.min_confidence = min_confidence
        try:
            self.model = FaceAnalysis(
                name=model_name,
                root=settings.MODEL_CACHE_DIR,
                providers=list(providers or ["CPUExecutionProvider"])
            )
            # Detection size affects accuracy significantly
            self.model.prepare(ctx_id=0, det_size=(det_size, det_size))
        except Exception as e:
            raise ModelLoadError(f"Failed to load InsightFace model '{model_name}': {e}") from e
        logger.info("InsightFace model loaded", model=model_name, det_size=det_size)

    def close(self) -> None:
        """Drop the model so its memory can be reclaimed."""
        logger.debug("Cleaning up InsightFace resources")
        self.model = None

    def _convert_to_detection(self, face_data: InsightFace) -> Optional[Detection]:
        """
        Convert an InsightFace result to a Detection.

        Args:
            face_data: Face detection result from InsightFace

        Returns:
            Detection with a pixel-space box, or None if the face carries no embedding
        """
        embedding = getattr(face_data, "normed_embedding", None)
        if embedding is None:
            return None

        x1, y1, x2, y2 = (float(v) for v in face_data.bbox[:4])
        return Detection(
            bounding_box=BoundingBox(
                x=x1,
                y=y1,
                width=max(x2 - x1, 0.0),
                height=max(y2 - y1, 0.0),
            ),
            embedding=np.asarray(embedding, dtype=np.float64),
            confidence=min(max(float(face_data.det_score), 0.0), 1.0),
        )

    def _process_frame(self, frame: np.ndarray) -> List[Any]:
        if self.model is None:
            raise EmbeddingSourceError("InsightFace model has been closed")
        try:
            faces = self.model.get(frame, max_num=self.max_faces)
        except Exception as e:
            logger.error(
                "Face processing failed",
                error=str(e),
                image_shape=frame.shape,
                exc_info=True
            )
            raise EmbeddingSourceError(f"InsightFace failed on frame: {e}") from e
        return list(faces or [])

    async def detect_faces(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect faces and extract embeddings without blocking the event loop.
        """
        frame_size(frame)
        faces = await asyncio.to_thread(self._process_frame, frame)

        detections = []
        for face in faces:
            if float(face.det_score) < self.min_confidence:
                continue
            detection = self._convert_to_detection(face)
            if detection is not None:
                detections.append(detection)

        logger.debug(
            "Face detection results",
            faces_found=len(faces),
            faces_kept=len(detections)
        )
        return detections
