"""Tests for frame decoding and encoding helpers."""
import numpy as np
import pytest

from app.core.exceptions import InvalidFrameError
from app.core.utils.image import bytes_to_numpy_array, encode_jpeg, frame_size


class TestImageUtils:

    def test_jpeg_round_trip_keeps_size(self, frame):
        decoded = bytes_to_numpy_array(encode_jpeg(frame, quality=90))

        assert decoded.shape == frame.shape

    @pytest.mark.parametrize("payload", [b"", b"definitely not an image"])
    def test_undecodable_bytes(self, payload):
        with pytest.raises(InvalidFrameError):
            bytes_to_numpy_array(payload)

    def test_frame_size(self):
        assert frame_size(np.zeros((480, 640, 3), dtype=np.uint8)) == (640, 480)
        assert frame_size(np.zeros((10, 20), dtype=np.uint8)) == (20, 10)

    @pytest.mark.parametrize("bad", [None, "frame", np.zeros(3), np.zeros((0, 640, 3))])
    def test_frame_size_rejects_non_images(self, bad):
        with pytest.raises(InvalidFrameError):
            frame_size(bad)
