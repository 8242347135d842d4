"""
Image processing utility functions.
"""
from typing import Tuple

import cv2
import numpy as np

from app.core.exceptions import InvalidFrameError


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes (JPEG, PNG, ...)
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a numpy array

    Raises:
        InvalidFrameError: If the image cannot be decoded
    """
    if not image_bytes:
        raise InvalidFrameError("Empty image payload")

    np_array = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(np_array, flags)

    if img is None:
        raise InvalidFrameError("Failed to decode image bytes")

    return img


def frame_size(frame: np.ndarray) -> Tuple[int, int]:
    """Return (width, height) of a frame.

    Raises:
        InvalidFrameError: If the frame is missing or not an image array
    """
    if frame is None:
        raise InvalidFrameError("Frame is missing")
    if not isinstance(frame, np.ndarray) or frame.ndim not in (2, 3):
        raise InvalidFrameError("Frame must be a 2D or 3D image array")
    height, width = frame.shape[:2]
    if width == 0 or height == 0:
        raise InvalidFrameError("Frame has zero size")
    return int(width), int(height)


def encode_jpeg(frame: np.ndarray, quality: int = 80) -> bytes:
    """Encode a frame as JPEG bytes (used for enrollment snapshots).

    Args:
        frame: Image array in BGR order
        quality: JPEG quality, 0-100

    Returns:
        bytes: Encoded JPEG image

    Raises:
        InvalidFrameError: If encoding fails
    """
    frame_size(frame)
    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise InvalidFrameError("Failed to encode frame as JPEG")
    return buffer.tobytes()
