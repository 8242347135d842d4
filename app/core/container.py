"""Service container for dependency injection."""
import asyncio
from typing import Optional

from app.core.config import settings
from app.core.exceptions import ModelLoadError
from app.core.logging import get_logger
from app.domain.entities.identity import Identity
from app.domain.interfaces.capture.frame_source import FrameSource
from app.domain.interfaces.recognition.embedding_source import EmbeddingSource
from app.domain.interfaces.storage.gallery_store import GalleryStore
from app.domain.interfaces.storage.media_store import MediaStore
from app.infrastructure.capture.frame_sources import CameraFrameSource, PushedFrameSource
from app.infrastructure.database.gallery_store import SqlAlchemyGalleryStore
from app.infrastructure.playback.queue_player import QueueMediaPlayer
from app.infrastructure.storage.json_file.gallery_store import JsonFileGalleryStore
from app.infrastructure.storage.local.media_store import LocalMediaStore
from app.services.detection_log import DetectionLog
from app.services.detection_loop import DetectionLoop
from app.services.enrollment.sequencer import EnrollmentSequencer
from app.services.enrollment.service import EnrollmentService
from app.services.gallery import GalleryService
from app.services.matching.match_engine import MatchEngine
from app.services.model_handle import EmbeddingModelHandle, EmbeddingSourceFactory
from app.services.notification.notifier import DEFAULT_GREETING_ID, PlaybackNotifier
from app.services.notification.scheduler import NotificationScheduler, create_scheduler

logger = get_logger(__name__)


async def load_insightface() -> EmbeddingSource:
    """Default embedding source factory; the model loads in a worker thread."""
    # Imported here so the service runs without the optional model extra
    from app.services.recognition.insight_face import InsightFaceEmbeddingSource

    return await asyncio.to_thread(InsightFaceEmbeddingSource)


def build_gallery_store() -> GalleryStore:
    """Gallery store for the configured backend."""
    if settings.GALLERY_BACKEND == "database":
        return SqlAlchemyGalleryStore.from_url(settings.DATABASE_URL, echo=settings.DEBUG)
    return JsonFileGalleryStore(settings.GALLERY_FILE_PATH)


def build_frame_source() -> FrameSource:
    """Frame source for the configured capture mode."""
    if settings.FRAME_SOURCE == "camera":
        return CameraFrameSource(settings.CAMERA_INDEX)
    return PushedFrameSource(max_age_ms=settings.FRAME_MAX_AGE_MS)


def build_default_greeting() -> Optional[Identity]:
    """Greeting played for any face, or None when recognised people are greeted."""
    if settings.GREETING_MODE != "any_face":
        return None
    return Identity(
        id=DEFAULT_GREETING_ID,
        name=settings.DEFAULT_GREETING_NAME,
        audio_ref=settings.DEFAULT_GREETING_AUDIO_REF,
        video_ref=settings.DEFAULT_GREETING_VIDEO_REF,
    )


def build_sequencer(name: str) -> EnrollmentSequencer:
    """Enrollment sequencer with the configured sample count and timings."""
    return EnrollmentSequencer(
        name,
        required_samples=settings.ENROLLMENT_REQUIRED_SAMPLES,
        alignment_tolerance=settings.ENROLLMENT_ALIGNMENT_TOLERANCE,
        dwell_ms=settings.ENROLLMENT_DWELL_MS,
        lockout_ms=settings.ENROLLMENT_LOCKOUT_MS,
        auto_capture=settings.ENROLLMENT_AUTO_CAPTURE,
        jpeg_quality=settings.SNAPSHOT_JPEG_QUALITY,
    )


class ServiceContainer:
    """Container for application services.

    This container manages the lifecycle and dependencies of all services in the application.
    It ensures proper initialization order and provides a single source of truth for service instances.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        # Get services from container
        gallery = container.gallery_service
        enrollment = container.enrollment_service
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        # Infrastructure - Use interface type hints
        self.gallery_store: Optional[GalleryStore] = None
        self.media_store: Optional[MediaStore] = None
        self.frame_source: Optional[FrameSource] = None
        self.player: Optional[QueueMediaPlayer] = None
        self.model_handle: Optional[EmbeddingModelHandle] = None

        # Domain services
        self.gallery_service: Optional[GalleryService] = None
        self.match_engine: Optional[MatchEngine] = None
        self.scheduler: Optional[NotificationScheduler] = None
        self.notifier: Optional[PlaybackNotifier] = None
        self.detection_log: Optional[DetectionLog] = None
        self.detection_loop: Optional[DetectionLoop] = None
        self.enrollment_service: Optional[EnrollmentService] = None

    @property
    def is_initialized(self) -> bool:
        return self.gallery_service is not None

    async def initialize(
        self,
        *,
        gallery_store: Optional[GalleryStore] = None,
        media_store: Optional[MediaStore] = None,
        frame_source: Optional[FrameSource] = None,
        embedding_source_factory: Optional[EmbeddingSourceFactory] = None,
        start_loop: Optional[bool] = None,
    ) -> None:
        """Initialize all services in the correct order.

        Every collaborator defaults to the configured implementation; tests
        and embedding applications can pass their own.

        Raises:
            GalleryStoreError: If the gallery cannot be loaded
        """
        self.gallery_store = gallery_store or build_gallery_store()
        if isinstance(self.gallery_store, SqlAlchemyGalleryStore):
            await self.gallery_store.init_schema()
        self.media_store = media_store or LocalMediaStore(settings.MEDIA_ROOT)

        self.gallery_service = GalleryService(self.gallery_store, self.media_store)
        await self.gallery_service.load()

        self.match_engine = MatchEngine(
            threshold=settings.MATCH_THRESHOLD,
            expected_dimension=settings.EMBEDDING_DIMENSION
        )
        self.scheduler = create_scheduler(settings.COOLDOWN_POLICY, settings.COOLDOWN_WINDOW_MS)
        self.player = QueueMediaPlayer(maxsize=settings.PLAYBACK_QUEUE_SIZE)
        self.notifier = PlaybackNotifier(
            self.scheduler, self.player, default_greeting=build_default_greeting()
        )
        self.detection_log = DetectionLog(maxlen=settings.DETECTION_LOG_SIZE)

        self.model_handle = EmbeddingModelHandle(embedding_source_factory or load_insightface)
        self.frame_source = frame_source or build_frame_source()
        self.detection_loop = DetectionLoop(
            self.frame_source,
            self.model_handle,
            self.gallery_service,
            self.match_engine,
            self.notifier,
            interval_ms=settings.SAMPLE_INTERVAL_MS,
            detection_timeout_ms=settings.DETECTION_TIMEOUT_MS,
            max_consecutive_failures=settings.MAX_CONSECUTIVE_FAILURES,
        )
        self.detection_loop.subscribe(self.detection_log)

        self.enrollment_service = EnrollmentService(
            self.model_handle,
            self.gallery_service,
            sequencer_factory=build_sequencer,
        )

        logger.info(
            "Services initialized",
            gallery_backend=type(self.gallery_store).__name__,
            cooldown_policy=self.scheduler.policy.value,
            greeting_mode=settings.GREETING_MODE,
            identities=len(self.gallery_service.snapshot)
        )

        if settings.DETECTION_AUTOSTART if start_loop is None else start_loop:
            try:
                await self.detection_loop.start()
            except ModelLoadError as e:
                # The API stays up for gallery management; /kiosk/start retries
                logger.error("Detection loop not started", error=str(e))

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        if self.enrollment_service and self.enrollment_service.is_active:
            await self.enrollment_service.cancel()
        self.enrollment_service = None

        if self.detection_loop:
            await self.detection_loop.stop()
            self.detection_loop = None

        self.detection_log = None
        self.notifier = None
        self.player = None
        self.scheduler = None
        self.match_engine = None
        self.gallery_service = None
        self.model_handle = None
        self.frame_source = None
        self.media_store = None

        # Cleanup infrastructure services
        if isinstance(self.gallery_store, SqlAlchemyGalleryStore):
            await self.gallery_store.dispose()
        self.gallery_store = None


# Global container instance
container = ServiceContainer()
