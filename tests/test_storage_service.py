"""Tests for the persistent store and its backends."""

import asyncio
import json

import pytest

from app.database import close_db, init_db
from app.schemas import EmailSettings
from app.services.storage_service import (
    ENTRIES_KEY,
    EMAIL_SETTINGS_KEY,
    MemoryBackend,
    PersistentStore,
    SQLiteBackend,
    StorageBackend,
    StorageReadError,
    create_backend,
)
from tests.conftest import make_entry


class FailingBackend(StorageBackend):
    async def read(self, key):
        raise RuntimeError("Database not initialized")

    async def write(self, key, value):
        raise RuntimeError("Database not initialized")


class FlakyReadBackend(MemoryBackend):
    """Fails the next `failures` reads, then behaves normally"""

    def __init__(self, initial=None, failures=1):
        super().__init__(initial)
        self.failures = failures

    async def read(self, key):
        if self.failures:
            self.failures -= 1
            raise OSError("database is locked")
        return await super().read(key)


class TestCollections:
    @pytest.mark.asyncio
    async def test_empty_by_default(self, store):
        assert await store.entries.get_all() == []
        assert await store.links.get_all() == []
        assert await store.archives.get_all() == []

    @pytest.mark.asyncio
    async def test_save_then_load_round_trip(self, store):
        entries = [
            make_entry("a"),
            make_entry("b", provider="Virgin Media", status="Completed", email_sent=True),
        ]
        await store.entries.save_all(entries)

        assert await store.entries.get_all() == entries

    @pytest.mark.asyncio
    async def test_persisted_with_camel_case_keys(self, store, backend):
        await store.entries.add(make_entry("a"))

        stored = json.loads(backend.data[ENTRIES_KEY])
        assert stored[0]["changeType"] == "New Channel"
        assert stored[0]["emailSent"] is False
        assert "createdAt" in stored[0]
        assert "updatedAt" in stored[0]

    @pytest.mark.asyncio
    async def test_add_preserves_insertion_order(self, store):
        for entry_id in ("c", "a", "b"):
            await store.entries.add(make_entry(entry_id))

        assert [e.id for e in await store.entries.get_all()] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_delete_removes_exactly_one(self, store, backend):
        await store.entries.save_all([make_entry("a"), make_entry("b"), make_entry("c")])
        before = json.loads(backend.data[ENTRIES_KEY])

        assert await store.entries.delete("b") is True

        after = json.loads(backend.data[ENTRIES_KEY])
        assert after == [before[0], before[2]]

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, store):
        await store.entries.add(make_entry("a"))

        assert await store.entries.delete("missing") is False
        assert len(await store.entries.get_all()) == 1

    @pytest.mark.asyncio
    async def test_update_unknown_id_returns_none(self, store):
        assert await store.entries.update("missing", lambda e: e) is None

    @pytest.mark.asyncio
    async def test_concurrent_appends_are_not_lost(self, store):
        await asyncio.gather(*(store.entries.add(make_entry(f"e{i}")) for i in range(10)))

        assert len(await store.entries.get_all()) == 10

    @pytest.mark.asyncio
    async def test_corrupt_document_degrades_to_empty(self):
        store = PersistentStore(MemoryBackend({ENTRIES_KEY: "{not json"}))

        assert await store.entries.get_all() == []


class TestWritesAfterFailedReads:
    @pytest.fixture
    def seeded(self):
        records = [make_entry(entry_id).model_dump(mode="json", by_alias=True) for entry_id in "abc"]
        return {ENTRIES_KEY: json.dumps(records)}

    @pytest.mark.asyncio
    async def test_add_keeps_existing_records_when_read_fails(self, seeded):
        backend = FlakyReadBackend(seeded)
        store = PersistentStore(backend)

        with pytest.raises(StorageReadError):
            await store.entries.add(make_entry("d"))

        assert backend.data[ENTRIES_KEY] == seeded[ENTRIES_KEY]
        await store.entries.add(make_entry("d"))
        assert [e.id for e in await store.entries.get_all()] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "mutate",
        [
            lambda store: store.entries.update("a", lambda e: e),
            lambda store: store.entries.update_many(["a"], lambda e: e),
            lambda store: store.entries.delete("a"),
        ],
    )
    async def test_mutations_refuse_to_write_when_read_fails(self, seeded, mutate):
        backend = FlakyReadBackend(seeded)

        with pytest.raises(StorageReadError):
            await mutate(PersistentStore(backend))

        assert backend.data[ENTRIES_KEY] == seeded[ENTRIES_KEY]

    @pytest.mark.asyncio
    async def test_corrupt_document_is_not_overwritten(self):
        backend = MemoryBackend({ENTRIES_KEY: "{not json"})
        store = PersistentStore(backend)

        with pytest.raises(StorageReadError):
            await store.entries.add(make_entry("d"))

        assert backend.data[ENTRIES_KEY] == "{not json"


class TestEmailSettings:
    @pytest.mark.asyncio
    async def test_defaults(self, store):
        assert await store.get_email_settings() == EmailSettings(
            primary_recipient="", secondary_recipient=""
        )

    @pytest.mark.asyncio
    async def test_save_overwrites_wholesale(self, store, backend):
        await store.save_email_settings(
            EmailSettings(primary_recipient="a@example.com", secondary_recipient="b@example.com")
        )
        await store.save_email_settings(EmailSettings(primary_recipient="c@example.com"))

        loaded = await store.get_email_settings()
        assert loaded.primary_recipient == "c@example.com"
        assert loaded.secondary_recipient == ""
        assert json.loads(backend.data[EMAIL_SETTINGS_KEY]) == {
            "primaryRecipient": "c@example.com",
            "secondaryRecipient": "",
        }


class TestWithoutBackend:
    @pytest.mark.asyncio
    async def test_reads_return_defaults_and_writes_are_dropped(self):
        store = PersistentStore(None)

        await store.entries.add(make_entry("a"))
        await store.save_email_settings(EmailSettings(primary_recipient="a@example.com"))

        assert store.available is False
        assert await store.entries.get_all() == []
        assert await store.get_email_settings() == EmailSettings()

    @pytest.mark.asyncio
    async def test_read_failure_degrades_to_empty(self):
        store = PersistentStore(FailingBackend())

        assert await store.entries.get_all() == []
        assert await store.get_email_settings() == EmailSettings()


class TestCreateBackend:
    def test_known_names(self):
        assert isinstance(create_backend("memory"), MemoryBackend)
        assert isinstance(create_backend("sqlite"), SQLiteBackend)
        assert create_backend("none") is None

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            create_backend("redis")


class TestSQLiteBackend:
    @pytest.mark.asyncio
    async def test_round_trip_through_sqlite(self, tmp_path):
        await init_db(str(tmp_path / "epg_changes.db"))
        try:
            store = PersistentStore(SQLiteBackend())
            entries = [make_entry("a"), make_entry("b", provider="Freeview")]

            await store.entries.save_all(entries)
            await store.entries.add(make_entry("c"))

            loaded = await store.entries.get_all()
            assert [e.id for e in loaded] == ["a", "b", "c"]
            assert loaded[:2] == entries
        finally:
            await close_db()
