"""
Dependency Injection Configuration

Holds the application's PersistentStore so request handlers receive it as a
FastAPI dependency and tests can swap in an in-memory store.
"""
import logging

from app.config import settings
from app.services.storage_service import PersistentStore, create_backend


logger = logging.getLogger(__name__)


class StoreProvider:
    """
    Lazily builds and caches the configured PersistentStore.

    A store can also be registered explicitly (e.g. by tests or at startup).
    """

    def __init__(self):
        self._store: PersistentStore | None = None

    def register(self, store: PersistentStore) -> None:
        self._store = store
        backend = type(store.backend).__name__ if store.backend else "none"
        logger.debug(f"Registered store with backend: {backend}")

    def get(self) -> PersistentStore:
        if self._store is None:
            self.register(PersistentStore(create_backend(settings.storage_backend)))
        return self._store

    def reset(self) -> None:
        """Drop the registered store (mainly for testing)."""
        self._store = None
        logger.debug("Store provider reset")


_store_provider = StoreProvider()


def get_store_provider() -> StoreProvider:
    return _store_provider


def get_store() -> PersistentStore:
    """Store dependency for FastAPI"""
    return _store_provider.get()
