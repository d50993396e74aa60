"""Generation history: the catalog of saved images and their files."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from modules.errors import InvalidInputError, PersistFailedError, WriteFailedError
from modules.services.storage_service import StorageService, write_atomic

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
IdFactory = Callable[[], uuid.UUID]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_date(value: Any) -> datetime:
    if isinstance(value, bool):
        raise TypeError("date must be an ISO-8601 string or epoch seconds")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise TypeError("date must be an ISO-8601 string or epoch seconds")


@dataclass(frozen=True, slots=True)
class GenerationRecord:
    """Metadata describing one saved image."""

    id: uuid.UUID
    prompt: str
    created_at: datetime
    filename: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": str(self.id),
            "prompt": self.prompt,
            "date": self.created_at.isoformat(),
            "filename": self.filename,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GenerationRecord":
        filename = payload["filename"]
        if not isinstance(filename, str) or not filename or Path(filename).name != filename:
            raise ValueError(f"Invalid asset filename: {filename!r}")
        prompt = payload["prompt"]
        if not isinstance(prompt, str):
            raise TypeError("prompt must be a string")
        return cls(
            id=uuid.UUID(str(payload["id"])),
            prompt=prompt,
            created_at=_parse_date(payload["date"]),
            filename=filename,
        )


class GenerationHistoryService:
    """JSON-backed catalog of generated images.

    The catalog lives in ``<data_dir>/images.json`` next to one ``<id>.png`` per
    record. This class is the only writer of either. Loading, saving and
    deleting hold one lock so mutations apply in a single total order; readers
    work on an immutable snapshot that is swapped only after the metadata file
    has been written.
    """

    def __init__(
        self,
        data_dir: Path,
        metadata_filename: str = "images.json",
        clock: Clock = _utcnow,
        id_factory: IdFactory = uuid.uuid4,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.metadata_path = self.data_dir / metadata_filename
        self.storage = StorageService(self.data_dir)
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.Lock()
        self._items: Tuple[GenerationRecord, ...] = ()
        self._issued_ids: Set[uuid.UUID] = set()
        with self._lock:
            self._load()

    # Reads -------------------------------------------------------------------
    def get_all(self) -> List[GenerationRecord]:
        """Return every record, newest first."""
        snapshot = self._items
        return sorted(snapshot, key=lambda record: record.created_at, reverse=True)

    def __len__(self) -> int:
        return len(self._items)

    def asset_path(self, record: GenerationRecord) -> Path:
        return self.storage.path_for(record.filename)

    def read_asset(self, record: GenerationRecord) -> bytes:
        return self.storage.read_image(record.filename)

    # Mutations ---------------------------------------------------------------
    def save(self, data: bytes, prompt: str) -> GenerationRecord:
        """Write the image file, then add its record and persist the catalog."""
        if not data:
            raise InvalidInputError("Image data must not be empty.")
        if not prompt or not prompt.strip():
            raise InvalidInputError("Prompt must not be empty.")

        with self._lock:
            record_id = self._new_id()
            filename = f"{record_id}.png"
            try:
                self.storage.save_image(data, filename)
            except OSError as exc:
                logger.error("Writing %s failed: %s", filename, exc)
                raise WriteFailedError(f"Could not write image file: {exc}") from exc

            record = GenerationRecord(
                id=record_id,
                prompt=prompt,
                created_at=self._clock(),
                filename=filename,
            )
            updated = self._items + (record,)
            self._persist(updated)
            self._items = updated

        logger.info("Saved image %s (%d bytes)", record.id, len(data))
        return record

    def delete(self, record: GenerationRecord) -> None:
        """Remove a record and its file. Unknown records are ignored."""
        with self._lock:
            remaining = tuple(item for item in self._items if item.id != record.id)
            if len(remaining) == len(self._items):
                logger.debug("Image %s already deleted", record.id)
                return
            removed = next(item for item in self._items if item.id == record.id)
            self._persist(remaining)
            self._items = remaining

            try:
                self.storage.remove(removed.filename)
            except OSError as exc:
                logger.warning("Record %s deleted but file %s remains: %s", removed.id, removed.filename, exc)

        logger.info("Deleted image %s", record.id)

    # Internal helpers ---------------------------------------------------------
    def _new_id(self) -> uuid.UUID:
        # Never reissue an id seen by this process, deleted and orphaned ones included.
        record_id = self._id_factory()
        while record_id in self._issued_ids:
            record_id = self._id_factory()
        self._issued_ids.add(record_id)
        return record_id

    def _persist(self, items: Sequence[GenerationRecord]) -> None:
        payload = json.dumps([item.to_dict() for item in items], indent=2, ensure_ascii=False)
        try:
            write_atomic(self.metadata_path, payload.encode("utf-8"))
        except OSError as exc:
            logger.error("Writing %s failed: %s", self.metadata_path, exc)
            raise PersistFailedError(f"Could not save image catalog: {exc}") from exc

    def _read_catalog(self) -> Optional[List[GenerationRecord]]:
        """Return the stored records, or None when the catalog had to be discarded."""
        if not self.metadata_path.exists():
            return []
        try:
            raw = json.loads(self.metadata_path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("catalog root must be a list")
            records = [GenerationRecord.from_dict(entry) for entry in raw]
            if len({record.id for record in records}) != len(records):
                raise ValueError("duplicate record ids")
        except (OSError, ValueError, TypeError, KeyError, OverflowError) as exc:
            logger.warning("Ignoring unreadable catalog %s: %s", self.metadata_path, exc)
            return None
        return records

    def _load(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Could not create %s: %s", self.data_dir, exc)

        records = self._read_catalog()
        discarded = records is None
        records = records or []
        present = tuple(record for record in records if self.storage.exists(record.filename))
        if len(present) != len(records):
            logger.warning("Dropping %d catalog entries with missing files", len(records) - len(present))
            try:
                self._persist(present)
            except PersistFailedError as exc:
                logger.warning("Could not save reconciled catalog: %s", exc)
        self._items = present
        self._issued_ids.update(record.id for record in records)

        removed = self.storage.cleanup(keep=[record.filename for record in present])
        if removed and discarded:
            logger.warning(
                "Removed %d files from %s after discarding unreadable catalog %s",
                len(removed),
                self.data_dir,
                self.metadata_path,
            )
        elif removed:
            logger.info("Removed %d unreferenced files from %s", len(removed), self.data_dir)
        logger.info("Loaded %d images from %s", len(self._items), self.metadata_path)
