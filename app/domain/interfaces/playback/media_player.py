"""Media player interface."""
from abc import ABC, abstractmethod

from ...entities.identity import Identity


class MediaPlayer(ABC):
    """Interface for the collaborator that plays an identity's greeting.

    `play()` starts playback and returns. The player reports the end of the
    media (or a media error) back through the notifier so the exclusivity
    gate can be released.
    """

    @abstractmethod
    async def play(self, identity: Identity) -> None:
        """
        Start the greeting for an identity.

        Raises:
            Exception: Any failure is treated as a playback error by the caller
        """
        pass
