"""Turns match results into greeting playbacks."""
from typing import Iterable, List, Optional

from app.core.logging import get_logger
from app.domain.entities.gallery import GallerySnapshot
from app.domain.entities.identity import Identity
from app.domain.interfaces.playback.media_player import MediaPlayer
from app.domain.value_objects.recognition import MatchResult
from app.services.notification.scheduler import NotificationScheduler

logger = get_logger(__name__)

DEFAULT_GREETING_ID = "default-greeting"


class PlaybackNotifier:
    """Consults the scheduler for each match and starts playback when allowed.

    Matches are evaluated strictly in detection order: with the global
    exclusivity policy, the first face of a frame takes the gate and every
    later face of the same frame is suppressed. Identities without any
    greeting media are skipped before the scheduler is asked, so they never
    take the gate or start a cooldown.

    With a `default_greeting` the notifier works in any-face mode: the gallery
    is ignored and the default greeting plays whenever a frame contains at
    least one face, under the same scheduler.

    Example:
        ```python
        notifier = PlaybackNotifier(GlobalExclusiveScheduler(30_000), player)
        triggered = await notifier.notify(results, gallery.snapshot, now_ms)
        ...
        notifier.playback_finished()  # called by the player when media ends
        ```
    """

    def __init__(
        self,
        scheduler: NotificationScheduler,
        player: MediaPlayer,
        default_greeting: Optional[Identity] = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            scheduler: Cooldown policy deciding when to play
            player: Collaborator that actually plays the greeting
            default_greeting: Media played for any detected face; enables
                any-face mode

        Raises:
            ValueError: If the default greeting has no audio or video
        """
        if default_greeting is not None and not default_greeting.has_greeting:
            raise ValueError("The default greeting needs an audio or video reference")
        self.scheduler = scheduler
        self.player = player
        self.default_greeting = default_greeting

    @property
    def greets_any_face(self) -> bool:
        return self.default_greeting is not None

    async def notify(
        self,
        results: Iterable[MatchResult],
        gallery: GallerySnapshot,
        now_ms: float
    ) -> List[str]:
        """Fire playbacks for the matches of one tick.

        Args:
            results: Match results in detection order, one per detected face
            gallery: Snapshot the results were computed against
            now_ms: Monotonic time of the tick

        Returns:
            List of identity ids whose greeting was started
        """
        results = list(results)
        if self.default_greeting is not None:
            if results and await self._trigger(self.default_greeting, now_ms, faces=len(results)):
                return [self.default_greeting.id]
            return []

        triggered: List[str] = []
        for result in results:
            if not result.is_match:
                continue
            identity = gallery.get(result.identity_id)
            if identity is None:
                continue
            if not identity.has_greeting:
                logger.debug("No greeting media, not playing", identity_id=identity.id)
                continue
            if await self._trigger(identity, now_ms, confidence=round(result.confidence, 1)):
                triggered.append(identity.id)
        return triggered

    async def _trigger(self, identity: Identity, now_ms: float, **context) -> bool:
        if not self.scheduler.should_trigger(identity.id, now_ms):
            return False

        self.scheduler.mark_triggered(identity.id, now_ms)
        try:
            await self.player.play(identity)
        except Exception as e:
            logger.error(
                "Playback failed to start",
                identity_id=identity.id,
                error=str(e),
                exc_info=True
            )
            self.scheduler.on_playback_error()
            return False

        logger.info("Greeting triggered", identity_id=identity.id, name=identity.name, **context)
        return True

    def playback_finished(self) -> None:
        """Player callback: the media reached its end."""
        logger.debug("Playback finished")
        self.scheduler.on_playback_finished()

    def playback_failed(self) -> None:
        """Player callback: the media could not be loaded or played."""
        logger.warning("Playback reported an error")
        self.scheduler.on_playback_error()
