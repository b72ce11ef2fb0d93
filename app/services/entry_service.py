"""
Entry Service

Create, edit, filter and delete logged EPG changes, plus bulk import.
"""
import logging
from collections.abc import Iterable
from datetime import datetime

from app.schemas import EntryCreate, EntryStatus, EntryUpdate, EPGEntry, utc_now
from app.services.bulk_import_service import ImportResult, parse_bulk_text
from app.services.storage_service import PersistentStore, RecordNotFoundError
from app.utils.identifiers import generate_id
from app.utils.logging_helpers import log_import_summary


logger = logging.getLogger(__name__)


def _touched(entry: EPGEntry, changes: dict, now: datetime | None = None) -> EPGEntry:
    """Apply changes and refresh updated_at without ever moving it backwards"""
    now = now or utc_now()
    updated_at = max(now, entry.updated_at)
    return entry.model_copy(update={**changes, "updated_at": updated_at})


def build_entry(payload: EntryCreate, *, now: datetime | None = None) -> EPGEntry:
    now = now or utc_now()
    return EPGEntry(
        id=generate_id(),
        date=payload.date,
        channel=payload.channel,
        provider=payload.provider,
        change_type=payload.change_type,
        description=payload.description,
        status=payload.status,
        created_at=now,
        updated_at=now,
        email_sent=False,
    )


async def create_entry(store: PersistentStore, payload: EntryCreate) -> EPGEntry:
    entry = await store.entries.add(build_entry(payload))
    logger.info("Created entry %s for %s (%s)", entry.id, entry.channel, entry.provider)
    return entry


async def update_entry(store: PersistentStore, entry_id: str, payload: EntryUpdate) -> EPGEntry:
    """
    Merge the provided fields into an entry

    Raises:
        RecordNotFoundError: If no entry has the identifier
    """
    changes = payload.changes()
    updated = await store.entries.update(entry_id, lambda entry: _touched(entry, changes))
    if updated is None:
        raise RecordNotFoundError("Entry", entry_id)
    logger.info("Updated entry %s: %s", entry_id, sorted(changes))
    return updated


async def set_entry_status(store: PersistentStore, entry_id: str, status: EntryStatus) -> EPGEntry:
    return await update_entry(store, entry_id, EntryUpdate(status=status))


async def mark_entries_emailed(store: PersistentStore, entry_ids: Iterable[str]) -> list[EPGEntry]:
    updated = await store.entries.update_many(
        entry_ids, lambda entry: _touched(entry, {"email_sent": True})
    )
    logger.info("Marked %s entries as emailed", len(updated))
    return updated


async def delete_entry(store: PersistentStore, entry_id: str) -> None:
    if not await store.entries.delete(entry_id):
        raise RecordNotFoundError("Entry", entry_id)
    logger.info("Deleted entry %s", entry_id)


async def import_entries(store: PersistentStore, text: str) -> ImportResult:
    result = parse_bulk_text(text)
    if result.entries:
        await store.entries.add_many(result.entries)
    log_import_summary(logger, len(result.entries), result.skipped)
    return result


def filter_entries(
    entries: Iterable[EPGEntry],
    search: str = "",
    status: str | None = None,
    provider: str | None = None,
) -> list[EPGEntry]:
    """
    Filter entries for display

    Args:
        entries: Entries in storage order
        search: Case-insensitive substring matched against channel or description
        status: Exact status, or None/'all' for any
        provider: Exact provider, or None/'all' for any

    Returns:
        Matching entries, order preserved
    """
    needle = search.lower()
    matched = []
    for entry in entries:
        if needle and needle not in entry.channel.lower() and needle not in entry.description.lower():
            continue
        if status not in (None, "all") and entry.status != status:
            continue
        if provider not in (None, "all") and entry.provider != provider:
            continue
        matched.append(entry)
    return matched
