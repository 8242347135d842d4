"""Tests for the frame source adapters."""
import numpy as np
import pytest

from app.core.exceptions import InvalidFrameError
from app.infrastructure.capture import frame_sources
from app.infrastructure.capture.frame_sources import CameraFrameSource, PushedFrameSource


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeCapture:
    instances = []

    def __init__(self, index, opened=True, frame=None):
        self.index = index
        self.opened = opened
        self.frame = frame
        self.released = False
        FakeCapture.instances.append(self)

    def isOpened(self):
        return self.opened

    def read(self):
        if self.frame is None:
            return False, None
        return True, self.frame

    def release(self):
        self.released = True


class TestPushedFrameSource:

    async def test_nothing_pushed_is_not_ready(self):
        assert await PushedFrameSource().read_frame() is None

    async def test_returns_latest_frame(self, frame):
        source = PushedFrameSource(clock=FakeClock())
        newer = frame.copy()

        source.push(frame)
        source.push(newer)

        assert await source.read_frame() is newer

    async def test_stale_frame_is_not_ready(self, frame):
        clock = FakeClock()
        source = PushedFrameSource(max_age_ms=2_000, clock=clock)
        source.push(frame)

        clock.now = 2_000
        assert await source.read_frame() is frame
        clock.now = 2_001
        assert await source.read_frame() is None

    async def test_no_max_age(self, frame):
        clock = FakeClock()
        source = PushedFrameSource(max_age_ms=None, clock=clock)
        source.push(frame)
        clock.now = 10 ** 9

        assert await source.read_frame() is frame

    async def test_release_drops_frame(self, frame):
        source = PushedFrameSource()
        source.push(frame)

        await source.release()

        assert await source.read_frame() is None

    @pytest.mark.parametrize("bad", [None, np.zeros(5), np.zeros((0, 0, 3))])
    def test_rejects_non_images(self, bad):
        with pytest.raises(InvalidFrameError):
            PushedFrameSource().push(bad)


class TestCameraFrameSource:

    @pytest.fixture(autouse=True)
    def reset_captures(self):
        FakeCapture.instances = []

    async def test_reads_from_camera(self, monkeypatch, frame):
        monkeypatch.setattr(frame_sources.cv2, "VideoCapture", lambda index: FakeCapture(index, frame=frame))
        source = CameraFrameSource(camera_index=2)

        assert await source.read_frame() is frame
        assert await source.read_frame() is frame
        assert len(FakeCapture.instances) == 1
        assert FakeCapture.instances[0].index == 2

        await source.release()
        assert FakeCapture.instances[0].released

    async def test_unavailable_camera_is_not_ready(self, monkeypatch):
        monkeypatch.setattr(frame_sources.cv2, "VideoCapture", lambda index: FakeCapture(index, opened=False))
        source = CameraFrameSource()

        assert await source.read_frame() is None
        assert FakeCapture.instances[0].released

    async def test_failed_read_is_not_ready(self, monkeypatch):
        monkeypatch.setattr(frame_sources.cv2, "VideoCapture", lambda index: FakeCapture(index))
        source = CameraFrameSource()

        assert await source.read_frame() is None
