"""Tests for the queue-backed media player."""
import pytest

from app.infrastructure.playback.queue_player import QueueMediaPlayer
from tests.fakes import make_identity


class TestQueueMediaPlayer:

    async def test_events_in_order(self):
        player = QueueMediaPlayer()

        await player.play(make_identity("ana", "Ana", audio_ref="ana.mp3"))
        await player.play(make_identity("bob", "Bob", video_ref="bob.mp4"))

        first = player.next_event()
        assert (first.identity_id, first.name, first.audio_ref) == ("ana", "Ana", "ana.mp3")
        assert player.next_event().video_ref == "bob.mp4"
        assert player.next_event() is None

    async def test_drops_oldest_when_full(self):
        player = QueueMediaPlayer(maxsize=2)

        for name in ("a", "b", "c"):
            await player.play(make_identity(name, name.upper()))

        assert player.pending == 2
        assert player.next_event().identity_id == "b"
        assert player.next_event().identity_id == "c"

    async def test_wait_event(self):
        player = QueueMediaPlayer()

        assert await player.wait_event(timeout=0.01) is None
        await player.play(make_identity("ana", "Ana"))
        assert (await player.wait_event(timeout=1)).identity_id == "ana"

    async def test_clear(self):
        player = QueueMediaPlayer()
        await player.play(make_identity("ana", "Ana"))

        player.clear()

        assert player.pending == 0

    def test_rejects_empty_queue(self):
        with pytest.raises(ValueError):
            QueueMediaPlayer(maxsize=0)
