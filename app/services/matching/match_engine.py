"""
Nearest-sample face matching against the registered gallery.

Each detected embedding is compared with every stored sample of every
identity. An identity is represented by its closest sample (not by the
centroid of its samples), which tolerates pose and lighting differences
between enrollment captures. The identity with the globally smallest
distance wins, provided that distance is strictly below the threshold.

The engine is pure: it does no I/O and keeps no state between calls, so it
can run on every frame against the current gallery snapshot.

Example:
    ```python
    engine = MatchEngine(threshold=0.6)
    results = engine.match_all(detections, gallery_service.snapshot)
    ```
"""
import math
from typing import Any, Iterable, List, Optional

import numpy as np

from app.core.exceptions import InvalidEmbeddingError
from app.domain.entities.face import BoundingBox, Detection, to_embedding
from app.domain.entities.identity import Identity
from app.domain.value_objects.recognition import MatchResult

DEFAULT_THRESHOLD = 0.6


def min_distance(embedding: np.ndarray, identity: Identity) -> float:
    """Distance from the embedding to the closest sample of an identity.

    Returns:
        float: The minimum distance, or infinity for an identity without samples
    """
    if not identity.is_matchable:
        return math.inf
    if identity.dimension != embedding.shape[0]:
        raise InvalidEmbeddingError(
            "Embedding length mismatch",
            details={
                "identity_id": identity.id,
                "expected": identity.dimension,
                "received": embedding.shape[0],
            }
        )
    samples = np.stack(identity.embeddings)
    return float(np.min(np.linalg.norm(samples - embedding, axis=1)))


def confidence_from_distance(distance: float) -> float:
    """Display confidence (0-100) derived from an L2 distance.

    This is a monotonic transform of the distance, not a calibrated probability.
    """
    if not math.isfinite(distance):
        return 0.0
    return float(min(max((1.0 - distance) * 100.0, 0.0), 100.0))


def match(
    embedding: Any,
    gallery: Iterable[Identity],
    threshold: float = DEFAULT_THRESHOLD,
    bounding_box: Optional[BoundingBox] = None,
) -> MatchResult:
    """
    Find the registered identity closest to a detected embedding.

    Identities are scanned in ascending id order and only a strictly smaller
    distance replaces the current best, so on an exact tie the identity with
    the smallest id wins.

    Args:
        embedding: Detected face embedding
        gallery: Identities to match against (typically a GallerySnapshot)
        threshold: Accept only if the best distance is strictly below this value
        bounding_box: Detection box copied into the result

    Returns:
        MatchResult: Matched identity or an unmatched result carrying the best
        distance found (infinity when no identity could be compared)

    Raises:
        InvalidEmbeddingError: If the embedding is malformed or its length
        differs from the stored samples
    """
    query = to_embedding(embedding)

    best: Optional[Identity] = None
    best_distance = math.inf
    for identity in sorted(gallery, key=lambda i: i.id):
        distance = min_distance(query, identity)
        if distance < best_distance:
            best, best_distance = identity, distance

    if best is None or not best_distance < threshold:
        return MatchResult(distance=best_distance, bounding_box=bounding_box)

    return MatchResult(
        identity_id=best.id,
        identity_name=best.name,
        distance=best_distance,
        confidence=confidence_from_distance(best_distance),
        bounding_box=bounding_box,
    )


class MatchEngine:
    """Matches detections against a gallery with a fixed acceptance threshold."""

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        expected_dimension: Optional[int] = None
    ) -> None:
        """Initialize the match engine.

        Args:
            threshold: Maximum L2 distance (exclusive) for a match
            expected_dimension: Reject embeddings of any other length, even
                when the gallery is empty
        """
        if threshold <= 0:
            raise ValueError("Match threshold must be positive")
        if expected_dimension is not None and expected_dimension <= 0:
            raise ValueError("Expected embedding dimension must be positive")
        self.threshold = threshold
        self.expected_dimension = expected_dimension

    def _check_dimension(self, embedding: Any) -> np.ndarray:
        query = to_embedding(embedding)
        if self.expected_dimension is not None and query.shape[0] != self.expected_dimension:
            raise InvalidEmbeddingError(
                "Embedding length mismatch",
                details={"expected": self.expected_dimension, "received": query.shape[0]}
            )
        return query

    def match(
        self,
        embedding: Any,
        gallery: Iterable[Identity],
        bounding_box: Optional[BoundingBox] = None,
    ) -> MatchResult:
        """Match a single embedding. See `match()`."""
        return match(self._check_dimension(embedding), gallery, self.threshold, bounding_box)

    def match_all(self, detections: List[Detection], gallery: Iterable[Identity]) -> List[MatchResult]:
        """Match every detection of a frame independently, in detection order.

        Several detections may resolve to the same identity; each box is a
        distinct physical face, so results are not deduplicated. All
        embeddings are validated before any result is produced.
        """
        identities = list(gallery)
        queries = [self._check_dimension(d.embedding) for d in detections]
        return [
            match(query, identities, self.threshold, detection.bounding_box)
            for query, detection in zip(queries, detections)
        ]
