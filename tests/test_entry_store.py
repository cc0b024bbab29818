"""
Unit tests for the entry store.

Covers loading, validation, id generation, transactional writes
and removal.
"""

import json
import logging
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock
import sys
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stepfour.core.errors import StorageError, StoreClosedError, ValidationError
from stepfour.core.models import Draft, Entry
from stepfour.journal.store import (
    CORRUPT_SUFFIX,
    EntryStore,
    LoadStatus,
    format_timestamp,
    serialize_entries,
)
from stepfour.storage.kv import KeyValueStorage, MemoryKeyValueStorage

FIXED_MOMENT = datetime(2025, 1, 31, 9, 15, 2, 123456, tzinfo=timezone.utc)
FIXED_MS = 1738314902123


def fixed_clock():
    return FIXED_MOMENT


def make_entry(entry_id: str, who: str = "Someone", what: str = "Something") -> Entry:
    return Entry(
        id=entry_id,
        who=who,
        what=what,
        affects="",
        my_part="",
        created_at="2025-01-01T00:00:00.000Z",
    )


def open_store(payload=None, clock=fixed_clock) -> EntryStore:
    storage = MemoryKeyValueStorage()
    if payload is not None:
        storage.set("resentments", payload)
    return EntryStore(storage, clock=clock).open()


class TestLoadAll:
    """Test reading the collection from storage."""

    def test_missing_key_is_empty(self):
        """No stored data gives an empty collection."""
        store = open_store()
        assert store.load_all() == []
        assert store.load_status is LoadStatus.EMPTY

    def test_loads_in_stored_order(self):
        """Entries come back in the order they were persisted."""
        entries = [make_entry("3", "C"), make_entry("1", "A"), make_entry("2", "B")]
        store = open_store(serialize_entries(entries))

        assert [e.id for e in store.entries] == ["3", "1", "2"]
        assert store.load_status is LoadStatus.LOADED

    def test_missing_optional_fields_default_to_empty(self):
        """Records without affects/myPart still load."""
        payload = json.dumps([{"id": "1", "who": "Boss", "what": "Yelled", "createdAt": "x"}])
        store = open_store(payload)

        entry = store.get("1")
        assert entry.affects == ""
        assert entry.my_part == ""

    def test_invalid_json_is_corrupt(self, caplog):
        """Unparseable payload falls back to empty and logs an error."""
        with caplog.at_level(logging.ERROR):
            store = open_store("{not json")

        assert store.entries == ()
        assert store.load_status is LoadStatus.CORRUPT
        assert "Error loading resentments" in caplog.text

    def test_non_array_is_corrupt(self):
        """A JSON object instead of an array is corrupt."""
        store = open_store(json.dumps({"id": "1"}))
        assert store.load_status is LoadStatus.CORRUPT

    def test_record_without_who_is_corrupt(self):
        """Persisted entries must have who."""
        store = open_store(json.dumps([{"id": "1", "who": "", "what": "x"}]))
        assert store.load_status is LoadStatus.CORRUPT

    def test_duplicate_ids_are_corrupt(self):
        """Ids must be unique."""
        payload = serialize_entries([make_entry("1"), make_entry("1")])
        store = open_store(payload)
        assert store.load_status is LoadStatus.CORRUPT

    @pytest.mark.parametrize("field,value", [
        ("affects", 5),
        ("myPart", ["a"]),
        ("createdAt", 17),
    ])
    def test_non_string_optional_field_is_corrupt(self, field, value):
        """Every persisted field must be a string."""
        record = {"id": "1", "who": "a", "what": "b", field: value}
        store = open_store(json.dumps([record]))

        assert store.load_status is LoadStatus.CORRUPT
        assert store.entries == ()

    def test_null_optional_field_defaults_to_empty(self):
        """null is treated like a missing optional field."""
        store = open_store(json.dumps([{"id": "1", "who": "a", "what": "b", "affects": None}]))

        assert store.load_status is LoadStatus.LOADED
        assert store.get("1").affects == ""

    def test_non_ascii_digit_id_does_not_raise(self):
        """Ids like '²' look numeric to isdigit() but are not integers."""
        store = open_store(json.dumps([{"id": "²", "who": "a", "what": "b"}]))

        assert store.load_status is LoadStatus.LOADED
        entry = store.add(Draft(who="Boss", what="x"))
        assert entry.id == str(FIXED_MS)

    def test_storage_failure_is_unavailable(self, caplog):
        """A failing read degrades to empty without raising."""
        storage = MagicMock(spec=KeyValueStorage)
        storage.get.side_effect = StorageError("disk gone")

        with caplog.at_level(logging.ERROR):
            store = EntryStore(storage).open()

        assert store.entries == ()
        assert store.load_status is LoadStatus.UNAVAILABLE
        assert "disk gone" in caplog.text


class TestAdd:
    """Test appending new entries."""

    def test_add_to_empty_store(self):
        """Empty store plus one valid draft gives exactly that entry."""
        store = open_store()

        entry = store.add(Draft(who="Boss", what="Criticized me publicly"))

        assert store.count == 1
        assert store.entries[0] == entry
        assert entry.who == "Boss"
        assert entry.what == "Criticized me publicly"
        assert entry.affects == ""
        assert entry.my_part == ""
        assert entry.id
        assert entry.created_at

    def test_generated_fields(self):
        """id is the millisecond timestamp, createdAt is ISO-8601 UTC."""
        store = open_store()

        entry = store.add(Draft(who="Boss", what="Criticized me publicly"))

        assert entry.id == str(FIXED_MS)
        assert entry.created_at == "2025-01-31T09:15:02.123Z"

    def test_add_persists_whole_collection(self):
        """Storage holds every entry after an add."""
        store = open_store(serialize_entries([make_entry("1")]))
        store.add(Draft(who="Landlord", what="Kept deposit", affects="Security"))

        stored = json.loads(store.storage.get("resentments"))
        assert [r["id"] for r in stored] == ["1", str(FIXED_MS)]
        assert stored[1]["affects"] == "Security"
        assert set(stored[1]) == {"id", "who", "what", "affects", "myPart", "createdAt"}

    @pytest.mark.parametrize("who,what", [
        ("", "x"),
        ("Boss", ""),
        ("", ""),
        ("   ", "x"),
        ("Boss", "\n\t"),
    ])
    def test_missing_required_field_rejected(self, who, what):
        """Empty who or what fails validation and changes nothing."""
        store = open_store()

        with pytest.raises(ValidationError):
            store.add(Draft(who=who, what=what))

        assert store.count == 0
        assert store.storage.get("resentments") is None

    def test_validation_error_names_fields(self):
        """ValidationError lists which fields are missing."""
        store = open_store()

        with pytest.raises(ValidationError) as exc_info:
            store.add(Draft(who="", what=""))

        assert exc_info.value.missing_fields == ("who", "what")

    def test_ids_unique_with_frozen_clock(self):
        """Several adds in the same millisecond still get distinct ids."""
        store = open_store()

        ids = [store.add(Draft(who=f"P{i}", what="x")).id for i in range(5)]

        assert len(set(ids)) == 5
        assert ids == [str(FIXED_MS + i) for i in range(5)]

    def test_ids_advance_past_loaded_ids(self):
        """A clock behind the newest stored id doesn't cause reuse."""
        future_id = str(FIXED_MS + 10_000)
        store = open_store(serialize_entries([make_entry(future_id)]))

        entry = store.add(Draft(who="Boss", what="x"))

        assert int(entry.id) == FIXED_MS + 10_001

    def test_values_are_trimmed(self):
        """Surrounding whitespace is not stored."""
        store = open_store()
        entry = store.add(Draft(who="  Boss ", what=" x ", my_part=" mine "))

        assert entry.who == "Boss"
        assert entry.what == "x"
        assert entry.my_part == "mine"

    def test_write_failure_leaves_memory_unchanged(self):
        """A failed write raises and the collection stays as before."""
        storage = MagicMock(spec=KeyValueStorage)
        storage.get.return_value = serialize_entries([make_entry("1")])
        storage.set.side_effect = StorageError("read-only")
        store = EntryStore(storage, clock=fixed_clock).open()

        with pytest.raises(StorageError):
            store.add(Draft(who="Boss", what="x"))

        assert [e.id for e in store.entries] == ["1"]


class TestRoundTrip:
    """Test persist-then-load."""

    def test_reload_reproduces_sequence(self):
        """A second store over the same storage sees the same entries."""
        storage = MemoryKeyValueStorage()
        first = EntryStore(storage, clock=fixed_clock).open()
        first.add(Draft(who="Boss", what="Criticized me", affects="Pride"))
        first.add(Draft(who="Sister", what="Forgot birthday", my_part="Never called"))
        first.add(Draft(who="The IRS", what="Audit"))

        second = EntryStore(storage).open()

        assert second.entries == first.entries

    def test_unicode_survives(self):
        """Non-ASCII text round-trips."""
        storage = MemoryKeyValueStorage()
        first = EntryStore(storage).open()
        first.add(Draft(who="Jörg", what="Sagte „nein“ 🙃"))

        assert EntryStore(storage).open().entries == first.entries


class TestRemove:
    """Test deleting entries."""

    def test_remove_keeps_relative_order(self):
        """Removing id 1 from [1, 2] leaves only 2."""
        store = open_store(serialize_entries([make_entry("1"), make_entry("2")]))

        assert store.remove("1") is True

        assert [e.id for e in store.entries] == ["2"]
        stored = json.loads(store.storage.get("resentments"))
        assert [r["id"] for r in stored] == ["2"]

    def test_remove_from_middle(self):
        """Other entries keep their order."""
        store = open_store(serialize_entries([make_entry(i) for i in ("1", "2", "3")]))
        store.remove("2")
        assert [e.id for e in store.entries] == ["1", "3"]

    def test_remove_twice_is_idempotent(self):
        """Second remove with the same id is a no-op."""
        store = open_store(serialize_entries([make_entry("1"), make_entry("2")]))

        store.remove("1")
        after_first = store.entries
        assert store.remove("1") is False

        assert store.entries == after_first

    def test_remove_unknown_id_does_not_write(self):
        """No matching id means no storage call."""
        storage = MagicMock(spec=KeyValueStorage)
        storage.get.return_value = serialize_entries([make_entry("1")])
        store = EntryStore(storage).open()

        assert store.remove("missing") is False
        storage.set.assert_not_called()

    def test_write_failure_leaves_memory_unchanged(self):
        """A failed delete write keeps the entry in memory."""
        storage = MagicMock(spec=KeyValueStorage)
        storage.get.return_value = serialize_entries([make_entry("1"), make_entry("2")])
        storage.set.side_effect = StorageError("read-only")
        store = EntryStore(storage).open()

        with pytest.raises(StorageError):
            store.remove("1")

        assert [e.id for e in store.entries] == ["1", "2"]


class FlakyStorage(MemoryKeyValueStorage):
    """Memory storage whose first few reads fail."""

    def __init__(self, initial=None, failures=1):
        super().__init__(initial)
        self.failures = failures
        self.writes = 0

    def get(self, key):
        if self.failures:
            self.failures -= 1
            raise StorageError("database is locked")
        return super().get(key)

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)


class TestUnavailableStorage:
    """Test writes after a load that could not read storage."""

    def test_add_rereads_before_writing(self):
        """Entries that were stored but not loaded are kept."""
        payload = serialize_entries([make_entry("1"), make_entry("2")])
        storage = FlakyStorage({"resentments": payload})
        store = EntryStore(storage, clock=fixed_clock).open()
        assert store.load_status is LoadStatus.UNAVAILABLE

        store.add(Draft(who="x", what="y"))

        stored = json.loads(storage.get("resentments"))
        assert [r["id"] for r in stored] == ["1", "2", str(FIXED_MS)]
        assert store.count == 3
        assert store.load_status is LoadStatus.LOADED

    def test_add_refused_while_still_unreadable(self):
        """No write happens if storage still can't be read."""
        payload = serialize_entries([make_entry("1"), make_entry("2")])
        storage = FlakyStorage({"resentments": payload}, failures=2)
        store = EntryStore(storage).open()

        with pytest.raises(StorageError):
            store.add(Draft(who="x", what="y"))

        assert storage.writes == 0
        assert storage.get("resentments") == payload
        assert store.count == 0

    def test_remove_rereads_before_writing(self):
        """A remove after a failed load acts on the stored collection."""
        payload = serialize_entries([make_entry("1"), make_entry("2")])
        storage = FlakyStorage({"resentments": payload})
        store = EntryStore(storage).open()

        assert store.remove("1") is True

        assert [r["id"] for r in json.loads(storage.get("resentments"))] == ["2"]

    def test_reread_finds_corrupt_payload(self):
        """A corrupt payload found on re-read is still backed up."""
        storage = FlakyStorage({"resentments": "{not json"})
        store = EntryStore(storage).open()

        store.add(Draft(who="x", what="y"))

        assert storage.get("resentments" + CORRUPT_SUFFIX) == "{not json"
        assert len(json.loads(storage.get("resentments"))) == 1


class TestCorruptPayload:
    """Test that unreadable data is kept when overwritten."""

    def test_first_write_preserves_raw_payload(self):
        """The original bytes move to the .corrupt key."""
        store = open_store("{not json")

        store.add(Draft(who="Boss", what="x"))

        assert store.storage.get("resentments" + CORRUPT_SUFFIX) == "{not json"
        assert len(json.loads(store.storage.get("resentments"))) == 1

    def test_preserved_only_once(self):
        """Later writes don't touch the backup."""
        store = open_store("{not json")
        store.add(Draft(who="Boss", what="x"))
        store.storage.set("resentments" + CORRUPT_SUFFIX, "checked")

        store.add(Draft(who="Boss", what="y"))

        assert store.storage.get("resentments" + CORRUPT_SUFFIX) == "checked"


class TestLifecycle:
    """Test open/close behavior."""

    def test_operations_require_open(self):
        """A store that was never opened refuses work."""
        store = EntryStore(MemoryKeyValueStorage())

        with pytest.raises(StoreClosedError):
            store.add(Draft(who="Boss", what="x"))
        with pytest.raises(StoreClosedError):
            store.load_all()

    def test_context_manager_closes_storage(self):
        """Leaving the with block closes the backend."""
        storage = MagicMock(spec=KeyValueStorage)
        storage.get.return_value = None

        with EntryStore(storage) as store:
            assert store.is_open

        assert not store.is_open
        storage.close.assert_called_once()
        with pytest.raises(StoreClosedError):
            store.remove("1")


class TestFormatTimestamp:
    """Test createdAt formatting."""

    def test_converts_to_utc(self):
        """Offsets are normalized to Z."""
        from datetime import timedelta

        moment = datetime(2025, 6, 1, 12, 0, 0, 5000, tzinfo=timezone(timedelta(hours=7)))
        assert format_timestamp(moment) == "2025-06-01T05:00:00.005Z"
