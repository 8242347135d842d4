"""Recent detections and running counters for the kiosk status panel."""
from collections import deque
from typing import Deque, List

from app.core.utils.clock import utc_now
from app.domain.value_objects.recognition import DetectionLogEntry, FrameResult

DEFAULT_LOG_SIZE = 10


class DetectionLog:
    """Detection loop subscriber keeping the latest recognised faces.

    Only matched results are logged. `total_detections` counts every
    matched face since start, `frames_processed` every completed tick.
    """

    def __init__(self, maxlen: int = DEFAULT_LOG_SIZE) -> None:
        if maxlen < 1:
            raise ValueError("Detection log size must be at least 1")
        self._entries: Deque[DetectionLogEntry] = deque(maxlen=maxlen)
        self.frames_processed = 0
        self.total_detections = 0

    def __call__(self, result: FrameResult) -> None:
        self.record(result)

    def record(self, result: FrameResult) -> None:
        self.frames_processed += 1
        detected_at = utc_now()
        for match in result.matches:
            if not match.is_match:
                continue
            self.total_detections += 1
            self._entries.appendleft(
                DetectionLogEntry(
                    identity_id=match.identity_id,
                    identity_name=match.identity_name,
                    confidence=match.confidence,
                    detected_at=detected_at,
                )
            )

    @property
    def entries(self) -> List[DetectionLogEntry]:
        """Logged detections, newest first."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self.frames_processed = 0
        self.total_detections = 0
