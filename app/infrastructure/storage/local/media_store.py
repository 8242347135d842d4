"""Local filesystem implementation of the media store."""
import asyncio
import re
import shutil
from pathlib import Path
from typing import Union

from app.core.exceptions import MediaStoreError
from app.core.logging import get_logger
from app.domain.interfaces.storage.media_store import MediaStore

logger = get_logger(__name__)

_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")


class LocalMediaStore(MediaStore):
    """Stores media as `<root>/<identity_id>/<kind>.<extension>`.

    References returned by `save()` are POSIX paths relative to the root
    (e.g. ``3f2b.../profile.jpg``), the same keys a storage bucket layout
    used, so they stay valid if the root directory moves.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def _check_segment(self, value: str, label: str) -> None:
        if not _SAFE_SEGMENT.match(value):
            raise MediaStoreError(f"Invalid media {label}: {value!r}")

    def resolve(self, reference: str) -> Path:
        """Absolute path of a reference, refusing anything outside the root."""
        root = self.root.resolve()
        path = (root / reference).resolve()
        if root not in path.parents:
            raise MediaStoreError(f"Media reference outside store: {reference!r}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def save(self, identity_id: str, kind: str, data: bytes, extension: str) -> str:
        self._check_segment(identity_id, "owner")
        self._check_segment(kind, "kind")
        self._check_segment(extension, "extension")
        reference = f"{identity_id}/{kind}.{extension.lower()}"
        path = self.resolve(reference)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise MediaStoreError(f"Failed to save media: {e}", details={"reference": reference})
        logger.debug("Saved media", reference=reference, size=len(data))
        return reference

    def _unlink(self, path: Path) -> bool:
        if not path.exists():
            return False
        path.unlink()
        parent = path.parent
        if parent != self.root.resolve() and not any(parent.iterdir()):
            shutil.rmtree(parent, ignore_errors=True)
        return True

    async def delete(self, reference: str) -> bool:
        try:
            path = self.resolve(reference)
        except MediaStoreError:
            # URLs and paths from elsewhere are not ours to delete
            return False
        try:
            deleted = await asyncio.to_thread(self._unlink, path)
        except OSError as e:
            raise MediaStoreError(f"Failed to delete media: {e}", details={"reference": reference})
        if deleted:
            logger.debug("Deleted media", reference=reference)
        return deleted
