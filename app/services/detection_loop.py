"""
Periodic face detection and greeting loop.

Every tick reads the current camera frame, runs the embedding model on it,
matches the detections against the current gallery snapshot and lets the
notifier decide which greetings to play. Ticks run one after another in a
single task, so two passes never overlap: a slow pass delays the next tick
instead of stacking concurrent ones.

Failure handling per tick:

- frame not ready yet: tick skipped silently (stall)
- detection slower than the timeout: tick skipped with a warning, and later
  ticks are skipped until the abandoned inference finishes
- embedding model error: tick skipped; after too many in a row the loop
  stops and raises `EmbeddingSourceUnavailableError`
- malformed embeddings from the model: tick dropped before any cooldown
  state is touched
- any other model exception: counted like an embedding model error
"""
import asyncio
import inspect
from typing import Any, Awaitable, Callable, List, Optional, Union

from app.core.exceptions import (
    EmbeddingSourceError,
    EmbeddingSourceUnavailableError,
    InvalidEmbeddingError,
    InvalidInputError,
)
from app.core.logging import get_logger
from app.core.utils.clock import Clock, monotonic_ms
from app.domain.interfaces.capture.frame_source import FrameSource
from app.domain.value_objects.recognition import FrameResult
from app.services.gallery import GalleryService
from app.services.matching.match_engine import MatchEngine
from app.services.model_handle import EmbeddingModelHandle
from app.services.notification.notifier import PlaybackNotifier

logger = get_logger(__name__)

FrameSubscriber = Callable[[FrameResult], Union[None, Awaitable[Any]]]

DEFAULT_INTERVAL_MS = 200
DEFAULT_DETECTION_TIMEOUT_MS = 2_000
DEFAULT_MAX_CONSECUTIVE_FAILURES = 5


class DetectionLoop:
    """Single-consumer detection loop over one camera.

    Example:
        ```python
        loop = DetectionLoop(camera, model_handle, gallery, engine, notifier)
        loop.subscribe(detection_log)
        await loop.start()
        ...
        await loop.stop()
        ```
    """

    def __init__(
        self,
        frame_source: FrameSource,
        model: EmbeddingModelHandle,
        gallery: GalleryService,
        engine: MatchEngine,
        notifier: PlaybackNotifier,
        *,
        interval_ms: float = DEFAULT_INTERVAL_MS,
        detection_timeout_ms: float = DEFAULT_DETECTION_TIMEOUT_MS,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
        clock: Clock = monotonic_ms,
    ) -> None:
        """Initialize the loop without starting it.

        Args:
            frame_source: Camera feed
            model: Shared embedding model, acquired on `start()`
            gallery: Source of the current gallery snapshot
            engine: Match engine with the configured threshold
            notifier: Cooldown-aware playback trigger
            interval_ms: Time between the starts of two ticks
            detection_timeout_ms: Skip the tick if detection takes longer
            max_consecutive_failures: Model errors in a row before giving up
            clock: Monotonic millisecond clock
        """
        if interval_ms <= 0:
            raise ValueError("Sample interval must be positive")
        if detection_timeout_ms <= 0:
            raise ValueError("Detection timeout must be positive")
        if max_consecutive_failures < 1:
            raise ValueError("Max consecutive failures must be at least 1")

        self.frame_source = frame_source
        self.model = model
        self.gallery = gallery
        self.engine = engine
        self.notifier = notifier
        self.interval_ms = interval_ms
        self.detection_timeout_ms = detection_timeout_ms
        self.max_consecutive_failures = max_consecutive_failures
        self.clock = clock

        self.consecutive_failures = 0
        self.last_error: Optional[BaseException] = None
        self._subscribers: List[FrameSubscriber] = []
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._holds_model = False
        self._detection: Optional[asyncio.Future] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, callback: FrameSubscriber) -> Callable[[], None]:
        """Receive every `FrameResult`; returns a function that unsubscribes."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def _publish(self, result: FrameResult) -> None:
        for callback in list(self._subscribers):
            try:
                outcome = callback(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    "Frame subscriber failed",
                    subscriber=getattr(callback, "__name__", type(callback).__name__),
                    error=str(e),
                    exc_info=True
                )

    def _record_failure(self, error: Exception) -> None:
        self.consecutive_failures += 1
        self.last_error = error
        logger.warning(
            "Embedding source failed, skipping tick",
            error=str(error),
            consecutive_failures=self.consecutive_failures
        )
        if self.consecutive_failures >= self.max_consecutive_failures:
            raise EmbeddingSourceUnavailableError(
                "Embedding source failed too many times in a row",
                details={
                    "consecutive_failures": self.consecutive_failures,
                    "last_error": str(error),
                }
            ) from error

    @staticmethod
    def _collect_abandoned(task: asyncio.Task) -> None:
        # Outcome of a detection that outlived its tick; nobody awaits it
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Abandoned detection failed", error=str(task.exception()))

    @property
    def detection_in_flight(self) -> bool:
        return self._detection is not None and not self._detection.done()

    async def run_once(self) -> Optional[FrameResult]:
        """
        Run one detection pass.

        A detection that timed out keeps running in the background (model
        inference cannot be interrupted); until it finishes every tick is
        skipped, so the model never runs two inferences at once.

        Returns:
            FrameResult, or None when the tick was skipped

        Raises:
            EmbeddingSourceUnavailableError: When this tick's failure reaches
                the consecutive failure limit
        """
        if self.detection_in_flight:
            logger.debug("Previous detection still running, skipping tick")
            return None
        self._detection = None

        frame = await self.frame_source.read_frame()
        if frame is None:
            logger.debug("Frame not ready, skipping tick")
            return None

        now_ms = self.clock()
        detection = asyncio.ensure_future(self.model.source.detect_faces(frame))
        try:
            detections = await asyncio.wait_for(
                asyncio.shield(detection),
                timeout=self.detection_timeout_ms / 1000.0
            )
        except asyncio.TimeoutError:
            self._detection = detection
            detection.add_done_callback(self._collect_abandoned)
            logger.warning("Detection timed out, skipping tick", timeout_ms=self.detection_timeout_ms)
            return None
        except InvalidInputError as e:
            logger.warning("Unusable frame or model output, skipping tick", error=str(e), details=e.details)
            return None
        except EmbeddingSourceError as e:
            self._record_failure(e)
            return None
        except Exception as e:
            logger.error("Unexpected embedding source error", error=str(e), exc_info=True)
            wrapped = EmbeddingSourceError(f"Unexpected embedding source error: {e}")
            wrapped.__cause__ = e
            self._record_failure(wrapped)
            return None
        self.consecutive_failures = 0

        snapshot = self.gallery.snapshot
        try:
            matches = self.engine.match_all(detections, snapshot)
        except InvalidEmbeddingError as e:
            logger.warning("Dropping tick with invalid embeddings", error=str(e), details=e.details)
            return None

        triggered = await self.notifier.notify(matches, snapshot, now_ms)
        result = FrameResult(timestamp_ms=now_ms, matches=matches, triggered=triggered)
        await self._publish(result)
        return result

    async def run(self) -> None:
        """
        Run ticks until `stop()` is called.

        Raises:
            EmbeddingSourceUnavailableError: If the model keeps failing
        """
        loop = asyncio.get_running_loop()
        interval = self.interval_ms / 1000.0
        logger.info("Detection loop running", interval_ms=self.interval_ms)
        try:
            while not self._stop_event.is_set():
                started = loop.time()
                await self.run_once()
                delay = max(0.0, interval - (loop.time() - started))
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        except EmbeddingSourceUnavailableError as e:
            self.last_error = e
            logger.error("Detection loop stopped, embedding source unavailable", error=str(e))
            raise
        except Exception as e:
            self.last_error = e
            logger.error("Detection loop crashed", error=str(e), exc_info=True)
            raise
        logger.info("Detection loop stopped")

    async def start(self) -> None:
        """Acquire the model and run the loop in a background task.

        Raises:
            ModelLoadError: If the embedding model cannot be loaded
        """
        if self.is_running:
            return
        if not self._holds_model:
            await self.model.acquire()
            self._holds_model = True
        self._stop_event.clear()
        self.consecutive_failures = 0
        self.last_error = None
        self._task = asyncio.create_task(self.run())

    async def wait(self) -> None:
        """Wait for the background loop to end.

        Raises:
            EmbeddingSourceUnavailableError: If the loop gave up on the model
        """
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        """Stop after the current tick, then release the camera and the model.

        An inference still running from a timed-out tick is awaited first so
        the model is never released under it. A loop that already ended with
        an error is not re-raised here; the error stays in `last_error`.
        """
        self._stop_event.set()
        if self._task is not None:
            try:
                await self._task
            except Exception:
                # Logged by run() and kept in last_error
                pass
            self._task = None
        if self._detection is not None:
            await asyncio.wait([self._detection])
            self._detection = None
        await self.frame_source.release()
        if self._holds_model:
            self._holds_model = False
            await self.model.release()
