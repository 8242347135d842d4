"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends

from app.core.container import ServiceContainer, container
from app.core.exceptions import ServiceNotInitializedError
from app.infrastructure.playback.queue_player import QueueMediaPlayer
from app.services.detection_log import DetectionLog
from app.services.detection_loop import DetectionLoop
from app.services.enrollment.service import EnrollmentService
from app.services.gallery import GalleryService
from app.services.notification.notifier import PlaybackNotifier


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance."""
    if not container.is_initialized:
        # Attempt to initialize if not already done (e.g., when run without lifespan)
        try:
            await container.initialize()
        except Exception as e:
            # Raise specific error if container is needed but fails init
            raise ServiceNotInitializedError(f"Service container could not be initialized: {e}")
    return container


async def get_gallery_service(
    container: ServiceContainer = Depends(get_container)
) -> AsyncGenerator[GalleryService, None]:
    """Provide the gallery service.

    Yields:
        GalleryService: Gallery of registered people

    Raises:
        ServiceNotInitializedError: If service is not initialized
    """
    if container.gallery_service is None:
        raise ServiceNotInitializedError("Gallery service not initialized")
    yield container.gallery_service


async def get_enrollment_service(
    container: ServiceContainer = Depends(get_container)
) -> AsyncGenerator[EnrollmentService, None]:
    """Provide the enrollment service."""
    if container.enrollment_service is None:
        raise ServiceNotInitializedError("Enrollment service not initialized")
    yield container.enrollment_service


async def get_detection_loop(
    container: ServiceContainer = Depends(get_container)
) -> AsyncGenerator[DetectionLoop, None]:
    """Provide the detection loop."""
    if container.detection_loop is None:
        raise ServiceNotInitializedError("Detection loop not initialized")
    yield container.detection_loop


async def get_detection_log(
    container: ServiceContainer = Depends(get_container)
) -> AsyncGenerator[DetectionLog, None]:
    """Provide the recent detections log."""
    if container.detection_log is None:
        raise ServiceNotInitializedError("Detection log not initialized")
    yield container.detection_log


async def get_notifier(
    container: ServiceContainer = Depends(get_container)
) -> AsyncGenerator[PlaybackNotifier, None]:
    """Provide the playback notifier."""
    if container.notifier is None:
        raise ServiceNotInitializedError("Playback notifier not initialized")
    yield container.notifier


async def get_player(
    container: ServiceContainer = Depends(get_container)
) -> AsyncGenerator[QueueMediaPlayer, None]:
    """Provide the queue-backed media player."""
    if container.player is None:
        raise ServiceNotInitializedError("Media player not initialized")
    yield container.player
