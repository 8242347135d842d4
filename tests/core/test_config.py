"""Tests for greeting mode settings validation."""
import pytest
from pydantic import ValidationError

from app.core.config import Settings


class TestGreetingMode:

    def test_defaults_to_recognized(self):
        assert Settings(_env_file=None).GREETING_MODE == "recognized"

    def test_any_face_needs_default_media(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, GREETING_MODE="any_face")

    def test_any_face_with_audio(self):
        config = Settings(_env_file=None, GREETING_MODE="any_face", DEFAULT_GREETING_AUDIO_REF="welcome.mp3")

        assert config.DEFAULT_GREETING_AUDIO_REF == "welcome.mp3"

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, GREETING_MODE="everyone")
