"""Tests for the recent detections log."""
import pytest

from app.domain.value_objects.recognition import FrameResult, MatchResult
from app.services.detection_log import DetectionLog


def matched(identity_id: str, confidence: float = 80.0) -> MatchResult:
    return MatchResult(
        identity_id=identity_id,
        identity_name=identity_id.title(),
        distance=0.2,
        confidence=confidence,
    )


class TestDetectionLog:

    def test_records_only_matches_newest_first(self):
        log = DetectionLog()

        log(FrameResult(timestamp_ms=0, matches=[matched("ana"), MatchResult()]))
        log(FrameResult(timestamp_ms=200, matches=[matched("bob")]))

        assert [e.identity_id for e in log.entries] == ["bob", "ana"]
        assert log.entries[1].identity_name == "Ana"
        assert log.total_detections == 2
        assert log.frames_processed == 2

    def test_keeps_bounded_history(self):
        log = DetectionLog(maxlen=3)

        for i in range(5):
            log.record(FrameResult(timestamp_ms=i, matches=[matched(f"p{i}")]))

        assert [e.identity_id for e in log.entries] == ["p4", "p3", "p2"]
        assert log.total_detections == 5

    def test_empty_frames_count_as_processed(self):
        log = DetectionLog()

        log.record(FrameResult(timestamp_ms=0))

        assert log.frames_processed == 1
        assert log.entries == []

    def test_clear(self):
        log = DetectionLog()
        log.record(FrameResult(timestamp_ms=0, matches=[matched("ana")]))

        log.clear()

        assert log.entries == []
        assert log.total_detections == 0
        assert log.frames_processed == 0

    def test_rejects_empty_size(self):
        with pytest.raises(ValueError):
            DetectionLog(maxlen=0)
