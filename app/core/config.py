"""Configuration settings for the face greeter kiosk."""
from typing import List, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        MATCH_THRESHOLD: Maximum L2 distance (exclusive) for accepting a match
        COOLDOWN_POLICY: Playback suppression policy (per_identity or global_exclusive)
        COOLDOWN_WINDOW_MS: Minimum time between two playbacks covered by the policy
        GALLERY_BACKEND: Where registered people are persisted (json or database)
        GREETING_MODE: Greet recognised people with their own media, or any face
            with the default greeting
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # Use double underscore for nested settings
    )

    # Core Settings
    PROJECT_NAME: str = "Face Greeter Kiosk"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Matching Settings
    MATCH_THRESHOLD: float = 0.6  # L2 distance over normalized embeddings
    EMBEDDING_DIMENSION: Optional[int] = None  # None accepts whatever the model produces

    # Notification Settings
    COOLDOWN_POLICY: str = "per_identity"
    COOLDOWN_WINDOW_MS: int = 30_000
    PLAYBACK_QUEUE_SIZE: int = 8

    # Greeting Settings
    GREETING_MODE: str = "recognized"  # recognized (per-person media) or any_face (one default greeting)
    DEFAULT_GREETING_NAME: str = "Welcome"
    DEFAULT_GREETING_AUDIO_REF: Optional[str] = None
    DEFAULT_GREETING_VIDEO_REF: Optional[str] = None

    # Detection Loop Settings
    SAMPLE_INTERVAL_MS: int = 200
    DETECTION_TIMEOUT_MS: int = 2_000
    MAX_CONSECUTIVE_FAILURES: int = 5
    DETECTION_LOG_SIZE: int = 10
    DETECTION_AUTOSTART: bool = True

    # Capture Settings
    FRAME_SOURCE: str = "push"  # push (browser uploads frames) or camera (local OpenCV device)
    CAMERA_INDEX: int = 0
    FRAME_MAX_AGE_MS: int = 2_000

    # Enrollment Settings
    ENROLLMENT_REQUIRED_SAMPLES: int = 5
    ENROLLMENT_ALIGNMENT_TOLERANCE: float = 0.2  # Fraction of frame width/height
    ENROLLMENT_DWELL_MS: int = 1_500
    ENROLLMENT_LOCKOUT_MS: int = 800
    ENROLLMENT_AUTO_CAPTURE: bool = True
    SNAPSHOT_JPEG_QUALITY: int = 80

    # Gallery Settings
    GALLERY_BACKEND: str = "json"
    GALLERY_FILE_PATH: str = "data/gallery.json"
    DATABASE_URL: str = "sqlite+aiosqlite:///data/gallery.db"
    MEDIA_ROOT: str = "data/media"

    # Embedding Model Settings
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    MODEL_DET_SIZE: int = 640
    MAX_FACES_PER_FRAME: int = 10
    MIN_FACE_CONFIDENCE: float = 0.5

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    @field_validator("COOLDOWN_POLICY")
    @classmethod
    def validate_cooldown_policy(cls, v: str) -> str:
        """Accept only the recognised cooldown policies."""
        allowed = {"per_identity", "global_exclusive"}
        if v not in allowed:
            raise ValueError(f"COOLDOWN_POLICY must be one of {sorted(allowed)}")
        return v

    @field_validator("GALLERY_BACKEND")
    @classmethod
    def validate_gallery_backend(cls, v: str) -> str:
        """Accept only the supported gallery backends."""
        allowed = {"json", "database"}
        if v not in allowed:
            raise ValueError(f"GALLERY_BACKEND must be one of {sorted(allowed)}")
        return v

    @field_validator("FRAME_SOURCE")
    @classmethod
    def validate_frame_source(cls, v: str) -> str:
        allowed = {"push", "camera"}
        if v not in allowed:
            raise ValueError(f"FRAME_SOURCE must be one of {sorted(allowed)}")
        return v

    @field_validator("GREETING_MODE")
    @classmethod
    def validate_greeting_mode(cls, v: str) -> str:
        allowed = {"recognized", "any_face"}
        if v not in allowed:
            raise ValueError(f"GREETING_MODE must be one of {sorted(allowed)}")
        return v

    @field_validator("MATCH_THRESHOLD")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("MATCH_THRESHOLD must be positive")
        return v

    @model_validator(mode="after")
    def validate_default_greeting(self) -> "Settings":
        """Any-face mode has nothing to play without default greeting media."""
        if self.GREETING_MODE == "any_face" and not (
            self.DEFAULT_GREETING_AUDIO_REF or self.DEFAULT_GREETING_VIDEO_REF
        ):
            raise ValueError("GREETING_MODE=any_face requires DEFAULT_GREETING_AUDIO_REF or DEFAULT_GREETING_VIDEO_REF")
        return self


settings = Settings()
