"""Media player that hands greetings to a browser front end through a queue."""
import asyncio
from typing import Optional

from app.core.logging import get_logger
from app.core.utils.clock import utc_now
from app.domain.entities.identity import Identity
from app.domain.interfaces.playback.media_player import MediaPlayer
from app.domain.value_objects.playback import PlaybackEvent

logger = get_logger(__name__)


class QueueMediaPlayer(MediaPlayer):
    """Queues a `PlaybackEvent` per greeting; the front end polls and plays them.

    The queue is bounded. When it is full the oldest pending greeting is
    dropped, since a stale greeting is worse than a missed one. The front end
    reports the end of each playback back through the notifier.
    """

    def __init__(self, maxsize: int = 8) -> None:
        if maxsize < 1:
            raise ValueError("Playback queue size must be at least 1")
        self._queue: asyncio.Queue[PlaybackEvent] = asyncio.Queue(maxsize=maxsize)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def play(self, identity: Identity) -> None:
        event = PlaybackEvent.from_identity(identity, utc_now())
        if self._queue.full():
            dropped = self._queue.get_nowait()
            logger.warning(
                "Playback queue full, dropping oldest greeting",
                dropped_identity_id=dropped.identity_id
            )
        self._queue.put_nowait(event)
        logger.debug("Greeting queued", identity_id=identity.id, pending=self.pending)

    def next_event(self) -> Optional[PlaybackEvent]:
        """Pop the oldest pending greeting, or None when there is nothing to play."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def wait_event(self, timeout: Optional[float] = None) -> Optional[PlaybackEvent]:
        """Wait for the next greeting, up to `timeout` seconds."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def clear(self) -> None:
        while self.next_event() is not None:
            pass
