"""Async orchestration of the kiosk's enrollment session."""
import asyncio
from typing import Callable, Optional

import numpy as np

from app.core.exceptions import NoActiveEnrollmentError
from app.core.logging import get_logger
from app.core.utils.clock import Clock, monotonic_ms
from app.domain.entities.identity import Identity
from app.domain.value_objects.enrollment import CaptureOutcome, EnrollmentProgress
from app.services.enrollment.sequencer import EnrollmentSequencer
from app.services.gallery import GalleryService
from app.services.model_handle import EmbeddingModelHandle

logger = get_logger(__name__)

SequencerFactory = Callable[[str], EnrollmentSequencer]


class EnrollmentService:
    """Runs at most one enrollment session at a time (one kiosk, one camera).

    A running session holds a reference on the shared embedding model; it is
    released when the session completes or is cancelled. Frames are sent
    through the model and fed to the session's sequencer. Completing the
    session publishes the identity through the gallery service; if that
    fails the session is kept so the operator can retry without capturing
    again.

    Example:
        ```python
        service = EnrollmentService(model_handle, gallery)
        await service.start("Ana")
        while service.progress.state is not EnrollmentState.COMPLETE:
            await service.process_frame(await camera.read_frame())
        identity = await service.complete(audio_ref="sounds/ana.mp3")
        ```
    """

    def __init__(
        self,
        model: EmbeddingModelHandle,
        gallery: GalleryService,
        sequencer_factory: SequencerFactory = EnrollmentSequencer,
        clock: Clock = monotonic_ms,
    ) -> None:
        """Initialize the service.

        Args:
            model: Shared face detection and embedding model
            gallery: Gallery the completed identity is published to
            sequencer_factory: Builds a sequencer for a name (carries the
                configured sample count, tolerance and timings)
            clock: Monotonic millisecond clock
        """
        self.model = model
        self.gallery = gallery
        self.sequencer_factory = sequencer_factory
        self.clock = clock
        self._session: Optional[EnrollmentSequencer] = None
        # Held across inference so cancel/complete never release the model under it
        self._lock = asyncio.Lock()

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def progress(self) -> EnrollmentProgress:
        """Progress of the active session.

        Raises:
            NoActiveEnrollmentError: If no session is running
        """
        return self._require_session().progress

    def _require_session(self) -> EnrollmentSequencer:
        if self._session is None:
            raise NoActiveEnrollmentError("No enrollment session is running")
        return self._session

    async def start(self, name: str) -> EnrollmentProgress:
        """
        Start a session, replacing (and cancelling) any session in progress.

        Raises:
            ValueError: If the name is blank
            ModelLoadError: If the embedding model cannot be loaded
        """
        session = self.sequencer_factory(name)
        async with self._lock:
            if self._session is None:
                await self.model.acquire()
            else:
                logger.info("Replacing enrollment session", previous=self._session.name)
                self._session.cancel()
            self._session = session
        logger.info("Enrollment started", name=session.name)
        return session.progress

    async def process_frame(self, frame: np.ndarray) -> EnrollmentProgress:
        """Detect faces in a frame and advance the session (auto-capture flow)."""
        async with self._lock:
            session = self._require_session()
            if session.is_complete:
                return session.progress
            detections = await self.model.source.detect_faces(frame)
            return session.process_frame(frame, detections, self.clock())

    async def capture(self, frame: np.ndarray) -> CaptureOutcome:
        """Capture a sample from a frame on explicit request (manual flow)."""
        async with self._lock:
            session = self._require_session()
            if session.is_complete:
                return CaptureOutcome.COMPLETE
            detections = await self.model.source.detect_faces(frame)
            return session.capture(frame, detections, self.clock())

    async def complete(
        self,
        audio_ref: Optional[str] = None,
        video_ref: Optional[str] = None,
        identity_id: Optional[str] = None,
    ) -> Identity:
        """
        Publish the completed session as an identity and end it.

        Args:
            audio_ref: Greeting audio reference
            video_ref: Greeting video reference
            identity_id: Re-capture an existing identity instead of creating
                one; its samples and profile image are replaced, and the
                media refs are updated only when given

        Returns:
            The published identity

        Raises:
            NoActiveEnrollmentError: If no session is running
            EnrollmentIncompleteError: If the session still needs samples
            IdentityNotFoundError: If `identity_id` is not in the gallery
            GalleryStoreError: If persisting fails (the session is kept)
        """
        async with self._lock:
            session = self._require_session()
            result = session.result()

            if identity_id is None:
                identity = await self.gallery.enroll(result, audio_ref=audio_ref, video_ref=video_ref)
            else:
                identity = await self.gallery.replace_embeddings(
                    identity_id, result, audio_ref=audio_ref, video_ref=video_ref
                )

            await self._end()
        return identity

    async def cancel(self) -> None:
        """Abort the active session. Nothing is written to the gallery.

        Raises:
            NoActiveEnrollmentError: If no session is running
        """
        async with self._lock:
            session = self._require_session()
            session.cancel()
            await self._end()

    async def _end(self) -> None:
        # Caller holds the lock
        self._session = None
        await self.model.release()
