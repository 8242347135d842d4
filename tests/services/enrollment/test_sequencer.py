"""Tests for the enrollment capture state machine."""
import pytest

from app.core.exceptions import (
    EnrollmentCancelledError,
    EnrollmentIncompleteError,
    InvalidEmbeddingError,
    InvalidFrameError,
)
from app.domain.entities.face import BoundingBox
from app.domain.value_objects.enrollment import CaptureOutcome, EnrollmentState
from app.services.enrollment.sequencer import (
    POSE_INSTRUCTIONS,
    EnrollmentSequencer,
    is_aligned,
)
from tests.fakes import make_detection, unit_vector, vector

DWELL = 1_000
LOCKOUT = 500


@pytest.fixture
def face():
    """One centered face."""
    return [make_detection(unit_vector(8, seed=1))]


@pytest.fixture
def sequencer() -> EnrollmentSequencer:
    return EnrollmentSequencer("Ana", required_samples=3, dwell_ms=DWELL, lockout_ms=LOCKOUT)


def hold(sequencer, frame, detections, start, end, step=100):
    """Feed frames every `step` ms over [start, end]."""
    progress = None
    for t in range(start, end + 1, step):
        progress = sequencer.process_frame(frame, detections, t)
    return progress


class TestAlignment:

    @pytest.mark.parametrize(
        "x, y, aligned",
        [
            (270, 190, True),    # centered
            (390, 190, True),    # 120px right, under 128
            (400, 190, False),   # 130px right
            (270, 285, True),    # 95px down, under 96
            (270, 286, False),   # exactly 96px down
        ],
    )
    def test_center_within_tolerance(self, x, y, aligned):
        box = BoundingBox(x=x, y=y, width=100, height=100)

        assert is_aligned(box, 640, 480, 0.2) is aligned


class TestAutoCapture:

    def test_no_face_keeps_awaiting(self, sequencer, frame):
        progress = hold(sequencer, frame, [], 0, 5_000)

        assert progress.state is EnrollmentState.AWAITING_FACE
        assert progress.captured == 0
        assert progress.instruction == POSE_INSTRUCTIONS[0]

    def test_captures_after_dwell(self, sequencer, frame, face):
        progress = sequencer.process_frame(frame, face, 0)
        assert progress.state is EnrollmentState.ALIGNING
        assert progress.aligned
        assert progress.align_progress == 0.0

        progress = sequencer.process_frame(frame, face, 500)
        assert progress.align_progress == pytest.approx(50.0)
        assert progress.captured == 0

        progress = sequencer.process_frame(frame, face, 1_000)
        assert progress.state is EnrollmentState.CAPTURING
        assert progress.captured == 1
        assert progress.instruction == POSE_INSTRUCTIONS[1]

    def test_misalignment_resets_dwell(self, sequencer, frame, face):
        off_center = [make_detection(unit_vector(8, seed=1), x=0, y=0)]

        sequencer.process_frame(frame, face, 0)
        sequencer.process_frame(frame, face, 900)
        progress = sequencer.process_frame(frame, off_center, 950)
        assert not progress.aligned
        assert progress.align_progress == 0.0

        sequencer.process_frame(frame, face, 1_000)
        assert sequencer.process_frame(frame, face, 1_900).captured == 0
        assert sequencer.process_frame(frame, face, 2_000).captured == 1

    def test_several_faces_pause_the_session(self, sequencer, frame, face):
        two_faces = face + [make_detection(unit_vector(8, seed=2), x=10, y=10)]

        sequencer.process_frame(frame, face, 0)
        progress = sequencer.process_frame(frame, two_faces, 900)

        assert progress.state is EnrollmentState.AWAITING_FACE
        assert sequencer.process_frame(frame, face, 1_000).captured == 0

    def test_lockout_delays_next_dwell(self, sequencer, frame, face):
        sequencer.process_frame(frame, face, 0)
        sequencer.process_frame(frame, face, 1_000)
        assert sequencer.captured == 1

        # Lockout until 1500, then dwell from 1500 to 2500
        hold(sequencer, frame, face, 1_100, 2_400)
        assert sequencer.captured == 1
        sequencer.process_frame(frame, face, 2_500)
        assert sequencer.captured == 2

    def test_completes_after_required_samples(self, sequencer, frame, face):
        progress = hold(sequencer, frame, face, 0, 10_000)

        assert progress.state is EnrollmentState.COMPLETE
        assert progress.captured == 3
        assert progress.remaining == 0
        assert progress.instruction is None

        result = sequencer.result()
        assert result.name == "Ana"
        assert len(result.embeddings) == 3
        assert result.profile_image[:2] == b"\xff\xd8"

    def test_complete_session_ignores_further_frames(self, sequencer, frame, face):
        hold(sequencer, frame, face, 0, 10_000)

        progress = hold(sequencer, frame, face, 10_100, 20_000)

        assert progress.captured == 3

    def test_auto_capture_disabled(self, frame, face):
        sequencer = EnrollmentSequencer("Ana", dwell_ms=DWELL, auto_capture=False)

        progress = hold(sequencer, frame, face, 0, 5_000)

        assert progress.captured == 0
        assert progress.align_progress == 100.0

    def test_invalid_frame_is_rejected(self, sequencer, face):
        with pytest.raises(InvalidFrameError):
            sequencer.process_frame(None, face, 0)


class TestManualCapture:

    def test_no_face(self, sequencer, frame):
        assert sequencer.capture(frame, [], 0) is CaptureOutcome.NO_FACE
        assert sequencer.state is EnrollmentState.AWAITING_FACE
        assert sequencer.captured == 0

    def test_ignores_alignment_and_lockout(self, sequencer, frame):
        corner = [make_detection(unit_vector(8, seed=1), x=0, y=0)]

        assert sequencer.capture(frame, corner, 0) is CaptureOutcome.CAPTURED
        assert sequencer.capture(frame, corner, 1) is CaptureOutcome.CAPTURED
        assert sequencer.captured == 2

    def test_uses_largest_face(self, sequencer, frame):
        small = make_detection(vector(1, 0, 0), width=50, height=50)
        large = make_detection(vector(0, 1, 0), width=200, height=200)

        sequencer.capture(frame, [small, large], 0)
        sequencer.capture(frame, [large], 1)
        sequencer.capture(frame, [large], 2)

        assert list(sequencer.result().embeddings[0]) == [0.0, 1.0, 0.0]

    def test_returns_complete_when_done(self, frame, face):
        sequencer = EnrollmentSequencer("Ana", required_samples=1)

        assert sequencer.capture(frame, face, 0) is CaptureOutcome.CAPTURED
        assert sequencer.capture(frame, face, 1) is CaptureOutcome.COMPLETE
        assert sequencer.captured == 1

    def test_dimension_mismatch_is_rejected(self, sequencer, frame):
        sequencer.capture(frame, [make_detection(vector(1, 0))], 0)

        with pytest.raises(InvalidEmbeddingError):
            sequencer.capture(frame, [make_detection(vector(1, 0, 0))], 1)
        assert sequencer.captured == 1


class TestCancel:

    def test_discards_samples(self, sequencer, frame, face):
        sequencer.capture(frame, face, 0)

        sequencer.cancel()

        assert sequencer.state is EnrollmentState.CANCELLED
        assert sequencer.captured == 0
        assert sequencer.progress.instruction is None

    def test_cancelled_session_cannot_be_used(self, sequencer, frame, face):
        sequencer.cancel()

        with pytest.raises(EnrollmentCancelledError):
            sequencer.process_frame(frame, face, 0)
        with pytest.raises(EnrollmentCancelledError):
            sequencer.capture(frame, face, 0)
        with pytest.raises(EnrollmentCancelledError):
            sequencer.result()


class TestSetup:

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": " "},
            {"name": "Ana", "required_samples": 0},
            {"name": "Ana", "alignment_tolerance": 0},
            {"name": "Ana", "alignment_tolerance": 0.6},
            {"name": "Ana", "dwell_ms": -1},
        ],
    )
    def test_rejects_bad_configuration(self, kwargs):
        with pytest.raises(ValueError):
            EnrollmentSequencer(**kwargs)

    def test_result_before_completion(self, sequencer):
        with pytest.raises(EnrollmentIncompleteError):
            sequencer.result()
