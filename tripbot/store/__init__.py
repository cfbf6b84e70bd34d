"""Shared trip document store and per-collection repositories."""

from tripbot.store.interface import DocumentStore, Subscription
from tripbot.store.memory import InMemoryDocumentStore
from tripbot.store.registry import StoreRegistry
from tripbot.store.repositories import (
    LEDGER_FIELDS,
    TripRepositories,
    TripSnapshot,
)
from tripbot.store.sql import SqlDocumentStore

__all__ = [
    "DocumentStore",
    "Subscription",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
    "StoreRegistry",
    "LEDGER_FIELDS",
    "TripRepositories",
    "TripSnapshot",
]
