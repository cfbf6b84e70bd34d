"""
Shared trip document store.

A trip is one document keyed by field name (members, expenses,
currencyRates, archivedSettlements, bookings). Writers replace whole
fields; concurrent writers race and the last one wins.
"""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Set

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """
    Async iterator over successive values of one field.

    Yields the value current at subscription time first, then every
    change. ``aclose()`` (or leaving ``async with``) tears it down.
    """

    def __init__(self, store: "DocumentStore", field: str):
        self.store = store
        self.field = field
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def push(self, value: Any):
        if not self._closed:
            self._queue.put_nowait(copy.deepcopy(value))

    async def aclose(self):
        if self._closed:
            return
        self._closed = True
        self.store.detach(self)
        self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        value = await self._queue.get()
        if value is _CLOSED:
            raise StopAsyncIteration
        return value

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


class DocumentStore(ABC):
    """Field-level access to one shared trip document."""

    def __init__(self):
        self._subscribers: Dict[str, Set[Subscription]] = {}

    @abstractmethod
    async def get(self, field: str) -> Any:
        """
        Read the latest value of a field.

        Returns:
            The stored value, or None when the field was never written
        """

    @abstractmethod
    async def update(self, field: str, value: Any) -> bool:
        """
        Overwrite a field.

        Returns:
            True if the store accepted the write. On False the caller must
            not assume the value changed.
        """

    async def subscribe(self, field: str) -> Subscription:
        """Open a subscription that starts with the current value."""
        subscription = Subscription(self, field)
        self._subscribers.setdefault(field, set()).add(subscription)
        subscription.push(await self.get(field))
        return subscription

    def detach(self, subscription: Subscription):
        subscribers = self._subscribers.get(subscription.field)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscribers[subscription.field]

    def publish(self, field: str, value: Any):
        """Deliver a new value to every open subscription on ``field``."""
        for subscription in list(self._subscribers.get(field, ())):
            subscription.push(value)

    @property
    def watched_fields(self) -> Set[str]:
        return set(self._subscribers)

    async def close(self):
        for subscribers in list(self._subscribers.values()):
            for subscription in list(subscribers):
                await subscription.aclose()
