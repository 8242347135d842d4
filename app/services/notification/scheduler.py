"""
Playback suppression policies.

The detection loop re-detects the same physically present face on every
tick, several times per second. Without suppression a single visit would
fire the greeting dozens of times, so every match goes through a scheduler
before anything is played.

Two policies are supported:

- ``per_identity``: each identity has its own cooldown window; different
  people can be greeted within the same window.
- ``global_exclusive``: at most one greeting plays at a time system wide, and
  a new one can only start once the previous one has finished and the
  global cooldown has elapsed.

Times are monotonic milliseconds supplied by the caller, which keeps the
schedulers deterministic under test.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional

from app.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_COOLDOWN_MS = 30_000


class CooldownPolicy(str, Enum):
    PER_IDENTITY = "per_identity"
    GLOBAL_EXCLUSIVE = "global_exclusive"


class NotificationScheduler(ABC):
    """Decides whether a match should fire a playback now."""

    def __init__(self, cooldown_ms: float = DEFAULT_COOLDOWN_MS) -> None:
        if cooldown_ms < 0:
            raise ValueError("Cooldown window must not be negative")
        self.cooldown_ms = cooldown_ms

    @property
    @abstractmethod
    def policy(self) -> CooldownPolicy:
        pass

    @abstractmethod
    def should_trigger(self, identity_id: str, now_ms: float) -> bool:
        """Whether a playback for the identity may start at `now_ms`."""
        pass

    @abstractmethod
    def mark_triggered(self, identity_id: str, now_ms: float) -> None:
        """Record that a playback for the identity started at `now_ms`."""
        pass

    def on_playback_finished(self) -> None:
        """Called when the player reports the end of the media."""

    def on_playback_error(self) -> None:
        """Called when the media fails to load or play.

        Treated exactly like a finished playback so no policy can be left
        waiting on a completion that will never come.
        """
        self.on_playback_finished()

    @abstractmethod
    def reset(self) -> None:
        """Forget all cooldown state."""
        pass

    def _elapsed(self, last_ms: Optional[float], now_ms: float) -> bool:
        return last_ms is None or now_ms - last_ms > self.cooldown_ms


class PerIdentityCooldownScheduler(NotificationScheduler):
    """Independent cooldown window per identity."""

    def __init__(self, cooldown_ms: float = DEFAULT_COOLDOWN_MS) -> None:
        super().__init__(cooldown_ms)
        self._last_triggered: Dict[str, float] = {}

    @property
    def policy(self) -> CooldownPolicy:
        return CooldownPolicy.PER_IDENTITY

    def should_trigger(self, identity_id: str, now_ms: float) -> bool:
        return self._elapsed(self._last_triggered.get(identity_id), now_ms)

    def mark_triggered(self, identity_id: str, now_ms: float) -> None:
        self._last_triggered[identity_id] = now_ms

    def last_triggered(self, identity_id: str) -> Optional[float]:
        return self._last_triggered.get(identity_id)

    def reset(self) -> None:
        self._last_triggered.clear()


class GlobalExclusiveScheduler(NotificationScheduler):
    """Single "playing" gate plus one global cooldown window."""

    def __init__(self, cooldown_ms: float = DEFAULT_COOLDOWN_MS) -> None:
        super().__init__(cooldown_ms)
        self._playing = False
        self._last_triggered: Optional[float] = None

    @property
    def policy(self) -> CooldownPolicy:
        return CooldownPolicy.GLOBAL_EXCLUSIVE

    @property
    def is_playing(self) -> bool:
        return self._playing

    def should_trigger(self, identity_id: str, now_ms: float) -> bool:
        return not self._playing and self._elapsed(self._last_triggered, now_ms)

    def mark_triggered(self, identity_id: str, now_ms: float) -> None:
        self._playing = True
        self._last_triggered = now_ms

    def on_playback_finished(self) -> None:
        if self._playing:
            logger.debug("Playback gate released")
        self._playing = False

    def reset(self) -> None:
        self._playing = False
        self._last_triggered = None


def create_scheduler(policy: str, cooldown_ms: float = DEFAULT_COOLDOWN_MS) -> NotificationScheduler:
    """Build the scheduler for a configured policy name.

    Raises:
        ValueError: If the policy is not recognised
    """
    policy = CooldownPolicy(policy)
    if policy is CooldownPolicy.GLOBAL_EXCLUSIVE:
        return GlobalExclusiveScheduler(cooldown_ms)
    return PerIdentityCooldownScheduler(cooldown_ms)
