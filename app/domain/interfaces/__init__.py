"""Service interfaces package."""
from .capture.frame_source import FrameSource
from .playback.media_player import MediaPlayer
from .recognition.embedding_source import EmbeddingSource
from .storage.gallery_store import GalleryStore
from .storage.media_store import MediaStore

__all__ = ["EmbeddingSource", "FrameSource", "GalleryStore", "MediaPlayer", "MediaStore"]
