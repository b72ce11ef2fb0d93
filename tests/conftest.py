"""Pytest fixtures for EPG Changes Tracker tests."""

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_store
from app.main import app
from app.schemas import EPGEntry
from app.services.storage_service import MemoryBackend, PersistentStore


def make_entry(
    entry_id: str = "entry1",
    channel: str = "BBC One HD",
    provider: str = "Sky",
    change_type: str = "New Channel",
    status: str = "Pending",
    created_at: datetime | None = None,
    **kwargs,
) -> EPGEntry:
    """Helper to create an EPGEntry with sensible defaults."""
    created_at = created_at or datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
    return EPGEntry(
        id=entry_id,
        date=kwargs.pop("date", date(2026, 10, 20)),
        channel=channel,
        provider=provider,
        change_type=change_type,
        description=kwargs.pop("description", "Channel launches on EPG slot 101"),
        status=status,
        created_at=created_at,
        updated_at=kwargs.pop("updated_at", created_at),
        email_sent=kwargs.pop("email_sent", False),
        **kwargs,
    )


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend) -> PersistentStore:
    """PersistentStore backed by process memory."""
    return PersistentStore(backend)


@pytest.fixture
def client(store):
    """TestClient with the in-memory store injected."""
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
