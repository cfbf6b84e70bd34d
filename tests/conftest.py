# tests/conftest.py
import datetime as dt
from decimal import Decimal
from typing import Dict, Optional

import pytest

from tripbot.database.session import DatabaseSessionManager
from tripbot.ledger.exceptions import RateSourceError
from tripbot.ledger.models import Member
from tripbot.services.rate_source import RateSource
from tripbot.store.memory import InMemoryDocumentStore
from tripbot.store.repositories import TripRepositories

START = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: dt.datetime = START, step: dt.timedelta = dt.timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> dt.datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class FakeRateSource(RateSource):
    """Canned quotes; set ``fail`` to simulate an unreachable service."""

    def __init__(self, quotes: Optional[Dict[str, Decimal]] = None, fail: bool = False):
        self.quotes = quotes or {}
        self.fail = fail
        self.calls = []

    async def fetch(self, base_code: str) -> Dict[str, Decimal]:
        self.calls.append(base_code)
        if self.fail:
            raise RateSourceError("service unavailable")
        return dict(self.quotes)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def members():
    return [
        Member(id="alice", name="Alice"),
        Member(id="bob", name="Bob"),
        Member(id="carol", name="Carol"),
    ]


@pytest.fixture
def store(members) -> InMemoryDocumentStore:
    """Trip document with Alice, Bob and Carol and a TWD/EUR rate table."""
    return InMemoryDocumentStore({
        "members": [m.to_document() for m in members],
        "currencyRates": {"TWD": "1", "EUR": "2"},
    })


@pytest.fixture
def repos(store, clock) -> TripRepositories:
    return TripRepositories(store, base_currency="TWD", default_rates={"TWD": 1}, clock=clock)


@pytest.fixture
def rate_source() -> FakeRateSource:
    return FakeRateSource({"EUR": Decimal("34.5"), "USD": Decimal("31")})


@pytest.fixture
async def sql_manager(tmp_path):
    """SQLite-backed session manager with the trip tables created."""
    manager = DatabaseSessionManager()
    manager.init(f"sqlite+aiosqlite:///{tmp_path / 'trip.db'}")
    await manager.create_all()
    yield manager
    await manager.close()
