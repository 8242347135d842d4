"""
Lazily loaded, shared embedding model.

Loading the face model takes seconds and a lot of memory, and both the
detection loop and the enrollment flow need it. The handle loads it on the
first `acquire()`, shares it between holders and unloads it when the last
holder releases it.
"""
import asyncio
import inspect
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from app.core.exceptions import ModelLoadError
from app.core.logging import get_logger
from app.domain.interfaces.recognition.embedding_source import EmbeddingSource

logger = get_logger(__name__)

EmbeddingSourceFactory = Callable[[], Union[EmbeddingSource, Awaitable[EmbeddingSource]]]


class ModelState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class EmbeddingModelHandle:
    """Reference-counted owner of one `EmbeddingSource`.

    Example:
        ```python
        handle = EmbeddingModelHandle(lambda: InsightFaceEmbeddingSource())
        source = await handle.acquire()
        try:
            detections = await source.detect_faces(frame)
        finally:
            await handle.release()
        ```
    """

    def __init__(self, factory: EmbeddingSourceFactory) -> None:
        """Initialize the handle without loading anything.

        Args:
            factory: Builds the embedding source; may be sync or async
        """
        self._factory = factory
        self._source: Optional[EmbeddingSource] = None
        self._state = ModelState.UNLOADED
        self._refcount = 0
        self._lock = asyncio.Lock()
        self.last_error: Optional[BaseException] = None

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ModelState.READY

    @property
    def refcount(self) -> int:
        return self._refcount

    @property
    def source(self) -> EmbeddingSource:
        """The loaded source.

        Raises:
            ModelLoadError: If the model is not loaded
        """
        if self._source is None:
            raise ModelLoadError("Embedding model is not loaded")
        return self._source

    async def _load(self) -> EmbeddingSource:
        self._state = ModelState.LOADING
        logger.info("Loading embedding model")
        try:
            source = self._factory()
            if inspect.isawaitable(source):
                source = await source
        except Exception as e:
            self._state = ModelState.FAILED
            self.last_error = e
            logger.error("Embedding model failed to load", error=str(e), exc_info=True)
            raise ModelLoadError(f"Failed to load embedding model: {e}") from e
        self._source = source
        self._state = ModelState.READY
        self.last_error = None
        logger.info("Embedding model ready")
        return source

    async def acquire(self) -> EmbeddingSource:
        """Get the model, loading it on first use.

        Concurrent callers wait for the same load. After a failed load the
        next call tries again.

        Raises:
            ModelLoadError: If the model cannot be loaded
        """
        async with self._lock:
            source = self._source if self._source is not None else await self._load()
            self._refcount += 1
            return source

    async def release(self) -> None:
        """Drop one reference; the model is unloaded when none remain."""
        async with self._lock:
            if self._refcount == 0:
                return
            self._refcount -= 1
            if self._refcount == 0 and self._source is not None:
                source, self._source = self._source, None
                self._state = ModelState.UNLOADED
                close = getattr(source, "close", None)
                if close is not None:
                    result = close()
                    if inspect.isawaitable(result):
                        await result
                logger.info("Embedding model unloaded")
