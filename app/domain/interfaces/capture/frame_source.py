"""Frame source interface."""
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


class FrameSource(ABC):
    """Interface for the camera feed consumed by the detection loop."""

    @abstractmethod
    async def read_frame(self) -> Optional[np.ndarray]:
        """
        Read the current frame.

        Returns:
            The frame, or None while the stream is not ready yet
        """
        pass

    @abstractmethod
    async def release(self) -> None:
        """Release the underlying media stream."""
        pass
