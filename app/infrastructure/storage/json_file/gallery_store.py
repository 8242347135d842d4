"""JSON file implementation of the gallery store."""
import asyncio
import os
import tempfile
from pathlib import Path
from typing import List, Union

from pydantic import TypeAdapter, ValidationError

from app.core.exceptions import GalleryStoreError, KioskError
from app.core.logging import get_logger
from app.domain.entities.identity import Identity
from app.domain.interfaces.storage.gallery_store import GalleryStore
from app.domain.models.storage.identity import IdentityRecord

logger = get_logger(__name__)

_records_adapter = TypeAdapter(List[IdentityRecord])


class JsonFileGalleryStore(GalleryStore):
    """Gallery persisted as a JSON array of identity records in one local file.

    Every write rewrites the whole file through a temporary file and
    `os.replace`, so a crash mid-write leaves either the old or the new file
    on disk. File I/O runs in a worker thread to keep the event loop free.
    A missing file is an empty gallery.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        """Initialize the store.

        Args:
            path: Location of the gallery JSON file
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_records(self) -> List[IdentityRecord]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "rb") as f:
                raw = f.read()
            if not raw.strip():
                return []
            return _records_adapter.validate_json(raw)
        except (OSError, ValidationError) as e:
            raise GalleryStoreError(
                f"Failed to read gallery file: {e}",
                details={"path": str(self.path)}
            )

    def _write_records(self, records: List[IdentityRecord]) -> None:
        payload = _records_adapter.dump_json(records, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise GalleryStoreError(
                f"Failed to write gallery file: {e}",
                details={"path": str(self.path)}
            )

    async def load_all(self) -> List[Identity]:
        """Load every identity from the file.

        Raises:
            GalleryStoreError: If the file is unreadable or holds invalid records
        """
        records = await asyncio.to_thread(self._read_records)
        try:
            identities = [record.to_identity() for record in records]
        except (KioskError, ValidationError) as e:
            raise GalleryStoreError(
                f"Gallery file contains an invalid identity: {e}",
                details={"path": str(self.path)}
            )
        logger.debug("Loaded gallery file", path=str(self.path), identities=len(identities))
        return identities

    async def upsert(self, identity: Identity) -> bool:
        record = IdentityRecord.from_identity(identity)
        async with self._lock:
            records = await asyncio.to_thread(self._read_records)
            replaced = False
            for index, existing in enumerate(records):
                if existing.id == record.id:
                    records[index] = record
                    replaced = True
                    break
            if not replaced:
                records.append(record)
            await asyncio.to_thread(self._write_records, records)
        logger.debug("Stored identity", identity_id=identity.id, replaced=replaced)
        return True

    async def remove(self, identity_id: str) -> bool:
        async with self._lock:
            records = await asyncio.to_thread(self._read_records)
            remaining = [record for record in records if record.id != identity_id]
            if len(remaining) == len(records):
                return False
            await asyncio.to_thread(self._write_records, remaining)
        logger.debug("Deleted identity", identity_id=identity_id)
        return True
