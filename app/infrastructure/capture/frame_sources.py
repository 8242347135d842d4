"""Frame source adapters: frames pushed by the kiosk front end, or a local camera."""
import asyncio
from typing import Optional

import cv2
import numpy as np

from app.core.logging import get_logger
from app.core.utils.clock import Clock, monotonic_ms
from app.core.utils.image import frame_size
from app.domain.interfaces.capture.frame_source import FrameSource

logger = get_logger(__name__)


class PushedFrameSource(FrameSource):
    """Holds the latest frame uploaded by the browser.

    The kiosk page owns the camera and posts frames; the detection loop
    always reads the most recent one. A frame older than `max_age_ms` is
    treated as "not ready", so a closed browser tab stalls the loop instead
    of greeting the same picture over and over.
    """

    def __init__(self, max_age_ms: Optional[float] = 2_000, clock: Clock = monotonic_ms) -> None:
        self.max_age_ms = max_age_ms
        self.clock = clock
        self._frame: Optional[np.ndarray] = None
        self._received_at: Optional[float] = None

    def push(self, frame: np.ndarray) -> None:
        """Replace the current frame.

        Raises:
            InvalidFrameError: If the frame is not an image array
        """
        frame_size(frame)
        self._frame = frame
        self._received_at = self.clock()

    async def read_frame(self) -> Optional[np.ndarray]:
        if self._frame is None or self._received_at is None:
            return None
        if self.max_age_ms is not None and self.clock() - self._received_at > self.max_age_ms:
            return None
        return self._frame

    async def release(self) -> None:
        self._frame = None
        self._received_at = None


class CameraFrameSource(FrameSource):
    """Reads frames from a local camera through OpenCV.

    The device is opened lazily on the first read. Reads run in a worker
    thread since `VideoCapture.read()` blocks until the next frame.
    """

    def __init__(self, camera_index: int = 0) -> None:
        self.camera_index = camera_index
        self._capture: Optional[cv2.VideoCapture] = None

    def _open(self) -> Optional[cv2.VideoCapture]:
        capture = cv2.VideoCapture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            logger.warning("Unable to open camera", camera_index=self.camera_index)
            return None
        logger.info("Camera opened", camera_index=self.camera_index)
        return capture

    def _read(self) -> Optional[np.ndarray]:
        if self._capture is None:
            self._capture = self._open()
            if self._capture is None:
                return None
        ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return frame

    async def read_frame(self) -> Optional[np.ndarray]:
        return await asyncio.to_thread(self._read)

    async def release(self) -> None:
        if self._capture is not None:
            capture, self._capture = self._capture, None
            await asyncio.to_thread(capture.release)
            logger.info("Camera released", camera_index=self.camera_index)
