"""Value objects package."""
from .enrollment import CaptureOutcome, EnrollmentProgress, EnrollmentResult, EnrollmentState
from .playback import PlaybackEvent
from .recognition import DetectionLogEntry, FrameResult, MatchResult

__all__ = [
    "CaptureOutcome",
    "DetectionLogEntry",
    "EnrollmentProgress",
    "EnrollmentResult",
    "EnrollmentState",
    "FrameResult",
    "MatchResult",
    "PlaybackEvent",
]
