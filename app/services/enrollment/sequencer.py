"""
Multi-sample enrollment capture flow.

A session accumulates a fixed number of embedding samples for one person.
With auto-capture, a sample is taken once exactly one face has stayed
centered in the frame for the dwell time; after each capture a short
lockout gives the person time to move to the next pose. Asking for a
different pose per sample (straight, left, right, up, down) gives the match
engine more varied samples to pick the nearest one from.

State machine:

    awaiting_face -> aligning -> capturing -> (awaiting_face | aligning) ... -> complete

A session that never sees a face simply stays in ``awaiting_face``. It can be
cancelled at any point; cancelling discards every captured sample.

Example:
    ```python
    sequencer = EnrollmentSequencer("Ana")
    while sequencer.state is not EnrollmentState.COMPLETE:
        frame = await camera.read_frame()
        detections = await source.detect_faces(frame)
        sequencer.process_frame(frame, detections, monotonic_ms())
    result = sequencer.result()
    ```
"""
from typing import List, Optional, Sequence

import numpy as np

from app.core.exceptions import (
    EnrollmentCancelledError,
    EnrollmentIncompleteError,
    InvalidEmbeddingError,
)
from app.core.logging import get_logger
from app.core.utils.image import encode_jpeg, frame_size
from app.domain.entities.face import BoundingBox, Detection
from app.domain.value_objects.enrollment import (
    CaptureOutcome,
    EnrollmentProgress,
    EnrollmentResult,
    EnrollmentState,
)

logger = get_logger(__name__)

DEFAULT_REQUIRED_SAMPLES = 5
DEFAULT_ALIGNMENT_TOLERANCE = 0.2
DEFAULT_DWELL_MS = 1_500
DEFAULT_LOCKOUT_MS = 800

POSE_INSTRUCTIONS = (
    "Look straight at the camera",
    "Turn slightly to the left",
    "Turn slightly to the right",
    "Tilt your head up",
    "Tilt your head down",
)


def is_aligned(box: BoundingBox, frame_width: int, frame_height: int, tolerance: float) -> bool:
    """Whether the box center lies within `tolerance` of the frame center on both axes.

    Args:
        box: Face bounding box in pixels
        frame_width: Frame width in pixels
        frame_height: Frame height in pixels
        tolerance: Allowed offset as a fraction of the frame dimension
    """
    face_x, face_y = box.center
    return (
        abs(face_x - frame_width / 2) < frame_width * tolerance
        and abs(face_y - frame_height / 2) < frame_height * tolerance
    )


class EnrollmentSequencer:
    """Drives one enrollment session. Pure: the caller supplies frames, detections and time."""

    def __init__(
        self,
        name: str,
        *,
        required_samples: int = DEFAULT_REQUIRED_SAMPLES,
        alignment_tolerance: float = DEFAULT_ALIGNMENT_TOLERANCE,
        dwell_ms: float = DEFAULT_DWELL_MS,
        lockout_ms: float = DEFAULT_LOCKOUT_MS,
        auto_capture: bool = True,
        jpeg_quality: int = 80,
    ) -> None:
        """Initialize a session.

        Args:
            name: Name of the person being enrolled
            required_samples: Number of samples that completes the session
            alignment_tolerance: Allowed center offset, fraction of frame size
            dwell_ms: Time the face must stay aligned before auto-capture
            lockout_ms: Pause after a capture before the dwell timer restarts
            auto_capture: Capture on dwell; when False only `capture()` takes samples
            jpeg_quality: Quality of the stored snapshots
        """
        if not name or not name.strip():
            raise ValueError("Enrollment name must not be blank")
        if required_samples < 1:
            raise ValueError("At least one sample is required")
        if not 0 < alignment_tolerance <= 0.5:
            raise ValueError("Alignment tolerance must be in (0, 0.5]")
        if dwell_ms < 0 or lockout_ms < 0:
            raise ValueError("Dwell and lockout times must not be negative")

        self.name = name.strip()
        self.required_samples = required_samples
        self.alignment_tolerance = alignment_tolerance
        self.dwell_ms = dwell_ms
        self.lockout_ms = lockout_ms
        self.auto_capture = auto_capture
        self.jpeg_quality = jpeg_quality

        self._embeddings: List[np.ndarray] = []
        self._snapshots: List[bytes] = []
        self._state = EnrollmentState.AWAITING_FACE
        self._aligned = False
        self._aligned_since: Optional[float] = None
        self._align_elapsed = 0.0
        self._lockout_until: Optional[float] = None

    @property
    def state(self) -> EnrollmentState:
        return self._state

    @property
    def captured(self) -> int:
        return len(self._embeddings)

    @property
    def is_complete(self) -> bool:
        return self._state is EnrollmentState.COMPLETE

    @property
    def progress(self) -> EnrollmentProgress:
        if self._state in (EnrollmentState.COMPLETE, EnrollmentState.CANCELLED):
            instruction = None
        else:
            instruction = POSE_INSTRUCTIONS[self.captured % len(POSE_INSTRUCTIONS)]
        if self.dwell_ms > 0:
            align_progress = min(self._align_elapsed / self.dwell_ms, 1.0) * 100.0
        else:
            align_progress = 100.0 if self._aligned else 0.0
        return EnrollmentProgress(
            name=self.name,
            state=self._state,
            captured=self.captured,
            required=self.required_samples,
            aligned=self._aligned,
            align_progress=align_progress,
            instruction=instruction,
        )

    def _ensure_active(self) -> None:
        if self._state is EnrollmentState.CANCELLED:
            raise EnrollmentCancelledError(f"Enrollment for '{self.name}' was cancelled")

    def _reset_alignment(self) -> None:
        self._aligned_since = None
        self._align_elapsed = 0.0

    def process_frame(
        self,
        frame: np.ndarray,
        detections: Sequence[Detection],
        now_ms: float
    ) -> EnrollmentProgress:
        """
        Advance the session with one frame.

        Args:
            frame: Current camera frame
            detections: Faces the embedding source found in the frame
            now_ms: Monotonic time of the frame

        Returns:
            EnrollmentProgress after this frame

        Raises:
            InvalidFrameError: If the frame is missing or malformed
            InvalidEmbeddingError: If an auto-captured embedding does not match
                the length of the earlier samples
            EnrollmentCancelledError: If the session was cancelled
        """
        self._ensure_active()
        if self.is_complete:
            return self.progress

        width, height = frame_size(frame)

        if len(detections) != 1:
            self._state = EnrollmentState.AWAITING_FACE
            self._aligned = False
            self._reset_alignment()
            return self.progress

        detection = detections[0]
        self._state = EnrollmentState.ALIGNING
        self._aligned = is_aligned(detection.bounding_box, width, height, self.alignment_tolerance)

        if not self._aligned:
            self._reset_alignment()
            return self.progress

        if self._lockout_until is not None and now_ms < self._lockout_until:
            self._reset_alignment()
            return self.progress

        if self._aligned_since is None:
            self._aligned_since = now_ms
        self._align_elapsed = now_ms - self._aligned_since

        if self.auto_capture and self._align_elapsed >= self.dwell_ms:
            self._store(frame, detection, now_ms)

        return self.progress

    def capture(
        self,
        frame: np.ndarray,
        detections: Sequence[Detection],
        now_ms: float
    ) -> CaptureOutcome:
        """
        Take a sample on explicit request (manual capture button).

        Alignment and lockout are not required. With several faces in view the
        largest one is used.

        Returns:
            CaptureOutcome.CAPTURED, NO_FACE when nothing was detected (the
            caller should ask the person to face the camera and retry), or
            COMPLETE when the session already has all its samples

        Raises:
            InvalidFrameError: If the frame is missing or malformed
            InvalidEmbeddingError: If the embedding length differs from earlier samples
            EnrollmentCancelledError: If the session was cancelled
        """
        self._ensure_active()
        if self.is_complete:
            return CaptureOutcome.COMPLETE

        frame_size(frame)
        if not detections:
            self._state = EnrollmentState.AWAITING_FACE
            logger.info("No face detected for manual capture", name=self.name)
            return CaptureOutcome.NO_FACE

        detection = max(detections, key=lambda d: d.bounding_box.area)
        self._store(frame, detection, now_ms)
        return CaptureOutcome.CAPTURED

    def _store(self, frame: np.ndarray, detection: Detection, now_ms: float) -> None:
        embedding = detection.embedding
        if self._embeddings and embedding.shape != self._embeddings[0].shape:
            raise InvalidEmbeddingError(
                "Embedding length differs from earlier enrollment samples",
                details={"expected": self._embeddings[0].shape[0], "received": embedding.shape[0]}
            )
        snapshot = encode_jpeg(frame, self.jpeg_quality)

        self._embeddings.append(embedding)
        self._snapshots.append(snapshot)
        self._reset_alignment()
        self._lockout_until = now_ms + self.lockout_ms

        if self.captured >= self.required_samples:
            self._state = EnrollmentState.COMPLETE
        else:
            self._state = EnrollmentState.CAPTURING

        logger.info(
            "Enrollment sample captured",
            name=self.name,
            captured=self.captured,
            required=self.required_samples
        )

    def cancel(self) -> None:
        """Abort the session and discard every captured sample."""
        if self._state is not EnrollmentState.CANCELLED:
            logger.info("Enrollment cancelled", name=self.name, discarded=self.captured)
        self._embeddings.clear()
        self._snapshots.clear()
        self._reset_alignment()
        self._aligned = False
        self._state = EnrollmentState.CANCELLED

    def result(self) -> EnrollmentResult:
        """
        Samples of a completed session.

        The first snapshot becomes the profile image.

        Raises:
            EnrollmentIncompleteError: If fewer than the required samples were captured
            EnrollmentCancelledError: If the session was cancelled
        """
        self._ensure_active()
        if not self.is_complete:
            raise EnrollmentIncompleteError(
                f"Enrollment for '{self.name}' has {self.captured} of {self.required_samples} samples"
            )
        return EnrollmentResult(
            name=self.name,
            embeddings=tuple(self._embeddings),
            profile_image=self._snapshots[0],
        )
