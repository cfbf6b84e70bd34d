import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from tripbot.database.models import TripField
from tripbot.database.session import DatabaseSessionManager
from tripbot.store.interface import DocumentStore, Subscription

logger = logging.getLogger(__name__)


class SqlDocumentStore(DocumentStore):
    """
    Trip document persisted as one ``trip_fields`` row per field.

    Each write bumps the row version. Writes made through this instance
    reach local subscribers at once; writes from other processes are
    noticed by polling versions every ``poll_interval`` seconds
    (0 disables polling).
    """

    def __init__(
            self,
            manager: DatabaseSessionManager,
            trip_id: str,
            poll_interval: float = 0
    ):
        super().__init__()
        self.manager = manager
        self.trip_id = trip_id
        self.poll_interval = poll_interval
        self._seen: Dict[str, int] = {}
        self._poll_task: Optional[asyncio.Task] = None

    async def get(self, field: str) -> Any:
        value, _ = await self._read(field)
        return value

    async def _read(self, field: str) -> Tuple[Any, int]:
        async with self.manager.session() as session:
            row = await session.get(TripField, (self.trip_id, field))
            if row is None:
                return None, 0
            return row.value, row.version

    async def update(self, field: str, value: Any) -> bool:
        try:
            async with self.manager.session() as session:
                row = await session.get(TripField, (self.trip_id, field))
                if row is None:
                    row = TripField(trip_id=self.trip_id, field=field, value=value, version=1)
                    session.add(row)
                else:
                    row.value = value
                    row.version = row.version + 1
                await session.flush()
                version = row.version
        except SQLAlchemyError as e:
            logger.warning(f"Write to '{field}' of trip {self.trip_id} failed: {e}")
            return False

        self._seen[field] = max(self._seen.get(field, 0), version)
        self.publish(field, value)
        return True

    async def subscribe(self, field: str) -> Subscription:
        subscription = Subscription(self, field)
        self._subscribers.setdefault(field, set()).add(subscription)

        try:
            value, version = await self._read(field)
        except Exception:
            self.detach(subscription)
            raise

        # A write landing during the read was already published to us.
        if version >= self._seen.get(field, 0):
            self._seen[field] = version
            subscription.push(value)

        self._ensure_polling()
        return subscription

    def _ensure_polling(self):
        if self.poll_interval > 0 and self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll())

    async def _poll(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.poll_once()

    async def poll_once(self):
        """Publish fields whose stored version moved past the last one seen."""
        fields = self.watched_fields
        if not fields:
            return

        try:
            async with self.manager.session() as session:
                result = await session.execute(
                    select(TripField)
                    .where(TripField.trip_id == self.trip_id)
                    .where(TripField.field.in_(fields))
                )
                rows = [(row.field, row.value, row.version) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.warning(f"Polling trip {self.trip_id} failed: {e}")
            return

        for field, value, version in rows:
            if version > self._seen.get(field, 0):
                self._seen[field] = version
                self.publish(field, value)

    async def close(self):
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await super().close()
