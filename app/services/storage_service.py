"""
Persistent Store

Keeps every record collection as one JSON document under a fixed key.
Mutations are whole-collection read-modify-write cycles; the backend only
needs to read and write strings by key, so tests can substitute an in-memory
backend for SQLite.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from app.database import session_scope
from app.models import StoredDocument
from app.schemas import ChannelArchive, EmailSettings, EPGEntry, Link, utc_now


logger = logging.getLogger(__name__)

ENTRIES_KEY = "epg-entries"
LINKS_KEY = "epg-links"
ARCHIVES_KEY = "epg-archives"
EMAIL_SETTINGS_KEY = "epg-email-settings"

RecordT = TypeVar("RecordT", bound=BaseModel)


class RecordNotFoundError(LookupError):
    """Raised when no record has the requested identifier"""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class StorageReadError(Exception):
    """Raised when a stored document cannot be loaded for modification"""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Cannot load {key} for update: {reason}")
        self.key = key


class StorageBackend(ABC):
    """Key-value persistence backend holding serialized documents"""

    @abstractmethod
    async def read(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent"""

    @abstractmethod
    async def write(self, key: str, value: str) -> None:
        """Replace the value stored under key"""


class MemoryBackend(StorageBackend):
    """Process-local backend, used for tests and throwaway instances"""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> str | None:
        return self.data.get(key)

    async def write(self, key: str, value: str) -> None:
        self.data[key] = value


class SQLiteBackend(StorageBackend):
    """Backend storing documents in the SQLite `documents` table"""

    async def read(self, key: str) -> str | None:
        async with session_scope() as session:
            result = await session.execute(
                select(StoredDocument.value).where(StoredDocument.key == key)
            )
            return result.scalar_one_or_none()

    async def write(self, key: str, value: str) -> None:
        stmt = sqlite_insert(StoredDocument).values(
            key=key, value=value, updated_at=utc_now()
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[StoredDocument.key],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        async with session_scope() as session:
            await session.execute(stmt)
        logger.debug("Persisted %s (%s bytes)", key, len(value))


class RecordCollection(Generic[RecordT]):
    """
    One persisted collection of records keyed by `id`.

    Every operation reads the full list and, for mutations, writes the full
    list back. Insertion order is preserved.
    """

    def __init__(
        self,
        store: "PersistentStore",
        key: str,
        record_type: type[RecordT],
    ):
        self._store = store
        self.key = key
        self.record_type = record_type
        self._adapter = TypeAdapter(list[record_type])

    async def get_all(self) -> list[RecordT]:
        """Current records; unreadable storage reads as an empty collection"""
        raw = await self._store.read_raw(self.key)
        if raw is None:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Stored %s could not be parsed (%s errors); using empty collection",
                self.key,
                exc.error_count(),
            )
            return []

    async def _load_for_update(self) -> list[RecordT]:
        """
        Current records for a read-modify-write cycle.

        Raises:
            StorageReadError: If the document cannot be read or parsed
        """
        raw = await self._store.read_raw_strict(self.key)
        if raw is None:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            raise StorageReadError(self.key, f"{exc.error_count()} validation errors") from exc

    async def save_all(self, records: Iterable[RecordT]) -> None:
        payload = self._adapter.dump_json(list(records), by_alias=True)
        await self._store.write_raw(self.key, payload.decode("utf-8"))

    async def get(self, record_id: str) -> RecordT | None:
        for record in await self.get_all():
            if record.id == record_id:
                return record
        return None

    async def add(self, record: RecordT) -> RecordT:
        return (await self.add_many([record]))[0]

    async def add_many(self, records: Iterable[RecordT]) -> list[RecordT]:
        new_records = list(records)
        async with self._store.lock:
            current = await self._load_for_update()
            current.extend(new_records)
            await self.save_all(current)
        logger.debug("Appended %s record(s) to %s", len(new_records), self.key)
        return new_records

    async def update(
        self,
        record_id: str,
        mutate: Callable[[RecordT], RecordT],
    ) -> RecordT | None:
        """
        Replace one record with `mutate(record)`.

        Returns:
            The new record, or None when no record has the identifier
        """
        async with self._store.lock:
            current = await self._load_for_update()
            for index, record in enumerate(current):
                if record.id == record_id:
                    updated = mutate(record)
                    current[index] = updated
                    await self.save_all(current)
                    return updated
        return None

    async def update_many(
        self,
        record_ids: Iterable[str],
        mutate: Callable[[RecordT], RecordT],
    ) -> list[RecordT]:
        """Apply `mutate` to every record whose id is listed, in one write"""
        wanted = set(record_ids)
        updated: list[RecordT] = []
        async with self._store.lock:
            current = await self._load_for_update()
            for index, record in enumerate(current):
                if record.id in wanted:
                    current[index] = mutate(record)
                    updated.append(current[index])
            if updated:
                await self.save_all(current)
        return updated

    async def delete(self, record_id: str) -> bool:
        """
        Remove the record with the identifier.

        Returns:
            True if a record was removed
        """
        async with self._store.lock:
            current = await self._load_for_update()
            remaining = [record for record in current if record.id != record_id]
            if len(remaining) == len(current):
                return False
            await self.save_all(remaining)
        logger.debug("Deleted %s from %s", record_id, self.key)
        return True


class PersistentStore:
    """
    Entry point for all persisted state.

    A store without a backend behaves as permanently empty: reads return the
    defaults and writes are dropped.
    """

    def __init__(self, backend: StorageBackend | None):
        self.backend = backend
        self.lock = asyncio.Lock()
        self.entries: RecordCollection[EPGEntry] = RecordCollection(self, ENTRIES_KEY, EPGEntry)
        self.links: RecordCollection[Link] = RecordCollection(self, LINKS_KEY, Link)
        self.archives: RecordCollection[ChannelArchive] = RecordCollection(
            self, ARCHIVES_KEY, ChannelArchive
        )

    @property
    def available(self) -> bool:
        return self.backend is not None

    async def read_raw(self, key: str) -> str | None:
        if self.backend is None:
            return None
        try:
            return await self.backend.read(key)
        except (SQLAlchemyError, OSError, RuntimeError) as exc:
            logger.warning("Failed to read %s from storage: %s", key, exc)
            return None

    async def read_raw_strict(self, key: str) -> str | None:
        if self.backend is None:
            return None
        try:
            return await self.backend.read(key)
        except (SQLAlchemyError, OSError, RuntimeError) as exc:
            logger.error("Failed to read %s from storage; refusing to overwrite it: %s", key, exc)
            raise StorageReadError(key, str(exc)) from exc

    async def write_raw(self, key: str, value: str) -> None:
        if self.backend is None:
            logger.debug("No storage backend; dropping write to %s", key)
            return
        await self.backend.write(key, value)

    async def get_email_settings(self) -> EmailSettings:
        raw = await self.read_raw(EMAIL_SETTINGS_KEY)
        if raw is None:
            return EmailSettings()
        try:
            return EmailSettings.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Stored email settings could not be parsed: %s", exc)
            return EmailSettings()

    async def save_email_settings(self, email_settings: EmailSettings) -> EmailSettings:
        async with self.lock:
            await self.write_raw(
                EMAIL_SETTINGS_KEY, email_settings.model_dump_json(by_alias=True)
            )
        logger.info("Email settings saved")
        return email_settings


def create_backend(name: str) -> StorageBackend | None:
    """
    Build the configured backend.

    Args:
        name: 'sqlite', 'memory' or 'none'

    Returns:
        Backend instance, or None for 'none'
    """
    if name == "sqlite":
        return SQLiteBackend()
    if name == "memory":
        return MemoryBackend()
    if name == "none":
        return None
    raise ValueError(f"Unknown storage backend: {name}")
