"""
Entry store.

Owns the in-memory resentment inventory and keeps it in step with
durable storage. The whole collection is written as one JSON array
under a single key on every change.

Every mutation writes first and only then replaces the in-memory list,
so a failed write leaves memory exactly as it was after the last
successful one.
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from stepfour.core.errors import StorageError, StoreClosedError, ValidationError
from stepfour.core.models import Draft, Entry
from stepfour.storage.kv import KeyValueStorage

logger = logging.getLogger(__name__)

DEFAULT_KEY = "resentments"
CORRUPT_SUFFIX = ".corrupt"


class LoadStatus(str, Enum):
    """Outcome of the most recent load."""
    NOT_LOADED = "not_loaded"
    EMPTY = "empty"
    LOADED = "loaded"
    CORRUPT = "corrupt"
    UNAVAILABLE = "unavailable"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with milliseconds and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_payload(payload: str) -> List[Entry]:
    """
    Decode a stored collection.

    Raises:
        ValueError: If the payload is not a JSON array of valid,
            uniquely-identified entry records.
    """
    data = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array, got {type(data).__name__}")

    entries = [Entry.from_dict(record) for record in data]

    seen = set()
    for entry in entries:
        if entry.id in seen:
            raise ValueError(f"Duplicate entry id: {entry.id}")
        seen.add(entry.id)

    return entries


def serialize_entries(entries: Sequence[Entry]) -> str:
    """Encode a collection for storage."""
    return json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)


class EntryStore:
    """
    The resentment inventory.

    Usage:
        with EntryStore(storage) as store:
            store.add(Draft(who="Boss", what="Criticized me publicly"))
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = DEFAULT_KEY,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.key = key
        self.clock = clock

        self._entries: List[Entry] = []
        self._open = False
        self._last_issued_id = 0
        self._corrupt_payload: Optional[str] = None
        self.load_status = LoadStatus.NOT_LOADED

    # ── Lifecycle ─────────────────────────────────────────────

    def open(self) -> "EntryStore":
        """Load the collection and accept operations."""
        self._open = True
        self.load_all()
        return self

    def close(self) -> None:
        """Release storage. The store cannot be used afterwards."""
        if not self._open:
            return
        self._open = False
        self.storage.close()
        logger.debug("Entry store closed")

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "EntryStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self._open:
            raise StoreClosedError("Entry store is not open")

    # ── Reads ─────────────────────────────────────────────────

    def load_all(self) -> List[Entry]:
        """
        Read the collection from storage into memory.

        Never raises for bad data: a missing key, an unreadable payload
        and a storage failure all leave an empty collection. Which of
        those happened is recorded in load_status.
        """
        self._require_open()
        self._corrupt_payload = None

        try:
            payload = self.storage.get(self.key)
        except StorageError as e:
            logger.error(f"Error loading resentments: {e}")
            self._replace([], LoadStatus.UNAVAILABLE)
            return []

        return self._apply_payload(payload)

    def _apply_payload(self, payload: Optional[str]) -> List[Entry]:
        """Decode a freshly read payload into memory and set load_status."""
        if payload is None:
            self._replace([], LoadStatus.EMPTY)
            return []

        try:
            entries = parse_payload(payload)
        except ValueError as e:
            logger.error(f"Error loading resentments: stored payload is unreadable ({e})")
            self._corrupt_payload = payload
            self._replace([], LoadStatus.CORRUPT)
            return []

        self._replace(entries, LoadStatus.LOADED if entries else LoadStatus.EMPTY)
        logger.info(f"Loaded {len(entries)} resentment(s)")
        return list(entries)

    @property
    def entries(self) -> Tuple[Entry, ...]:
        """Snapshot of the collection in insertion order."""
        return tuple(self._entries)

    @property
    def count(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[Entry]:
        """Find an entry by id."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    # ── Mutations ─────────────────────────────────────────────

    def add(self, draft: Draft) -> Entry:
        """
        Validate a draft and append it as a new entry.

        Raises:
            ValidationError: If who or what is empty. Nothing is written.
            StorageError: If the write fails. Memory is left unchanged.
        """
        self._require_open()

        missing = draft.missing_fields()
        if missing:
            raise ValidationError(missing)

        self._reload_if_unavailable()

        entry = Entry(
            id=self._next_id(),
            who=draft.who.strip(),
            what=draft.what.strip(),
            affects=(draft.affects or "").strip(),
            my_part=(draft.my_part or "").strip(),
            created_at=format_timestamp(self.clock()),
        )

        updated = self._entries + [entry]
        self._write(updated)
        self._entries = updated

        logger.info(f"Added resentment {entry.id} ({entry.who})")
        return entry

    def remove(self, entry_id: str) -> bool:
        """
        Delete the entry with the given id.

        Confirmation is the caller's job. Returns False without writing
        if no entry has that id.

        Raises:
            StorageError: If the write fails. Memory is left unchanged.
        """
        self._require_open()
        self._reload_if_unavailable()

        updated = [entry for entry in self._entries if entry.id != entry_id]
        if len(updated) == len(self._entries):
            logger.debug(f"Remove skipped, no resentment with id {entry_id}")
            return False

        self._write(updated)
        self._entries = updated

        logger.info(f"Removed resentment {entry_id}")
        return True

    # ── Internals ─────────────────────────────────────────────

    def _replace(self, entries: List[Entry], status: LoadStatus) -> None:
        self._entries = list(entries)
        self.load_status = status
        for entry in entries:
            if entry.id.isascii() and entry.id.isdigit():
                self._last_issued_id = max(self._last_issued_id, int(entry.id))

    def _reload_if_unavailable(self) -> None:
        """
        Re-read storage before writing over a collection never seen.

        Raises:
            StorageError: If storage is still unreadable. Nothing is written.
        """
        if self.load_status is not LoadStatus.UNAVAILABLE:
            return

        try:
            payload = self.storage.get(self.key)
        except StorageError as e:
            logger.error(f"Refusing to save, stored resentments still unreadable: {e}")
            raise StorageError("Stored resentments could not be read; not overwriting them") from e

        self._apply_payload(payload)
        logger.info(f"Storage readable again, status {self.load_status.value}")

    def _next_id(self) -> str:
        """Millisecond timestamp, bumped past anything already issued."""
        candidate = max(int(self.clock().timestamp() * 1000), self._last_issued_id + 1)
        existing = {entry.id for entry in self._entries}
        while str(candidate) in existing:
            candidate += 1
        self._last_issued_id = candidate
        return str(candidate)

    def _write(self, entries: List[Entry]) -> None:
        """Persist a full collection, preserving a corrupt payload first."""
        if self._corrupt_payload is not None:
            backup_key = self.key + CORRUPT_SUFFIX
            self.storage.set(backup_key, self._corrupt_payload)
            logger.warning(f"Preserved unreadable payload under '{backup_key}'")
            self._corrupt_payload = None

        try:
            self.storage.set(self.key, serialize_entries(entries))
        except StorageError as e:
            logger.error(f"Error saving resentments: {e}")
            raise
