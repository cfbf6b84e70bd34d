import logging
from typing import Dict, Optional

from tripbot.database.session import DatabaseSessionManager
from tripbot.store.interface import DocumentStore
from tripbot.store.memory import InMemoryDocumentStore
from tripbot.store.sql import SqlDocumentStore

logger = logging.getLogger(__name__)


class StoreRegistry:
    """One document store per trip, created on first use."""

    def __init__(
            self,
            backend: str = "memory",
            manager: Optional[DatabaseSessionManager] = None,
            poll_interval: float = 0
    ):
        if backend not in ("memory", "sql"):
            raise ValueError(f"Unknown store backend: {backend}")
        if backend == "sql" and manager is None:
            raise ValueError("The sql backend needs a DatabaseSessionManager")

        self.backend = backend
        self.manager = manager
        self.poll_interval = poll_interval
        self._stores: Dict[str, DocumentStore] = {}

    def get(self, trip_id: str) -> DocumentStore:
        store = self._stores.get(trip_id)
        if store is None:
            if self.backend == "sql":
                store = SqlDocumentStore(self.manager, trip_id, self.poll_interval)
            else:
                store = InMemoryDocumentStore()
            self._stores[trip_id] = store
            logger.info(f"Opened {self.backend} store for trip {trip_id}")
        return store

    async def close(self):
        for store in self._stores.values():
            await store.close()
        self._stores.clear()
