from typing import Any

from sqlalchemy import Integer, String, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from tripbot.database.base import Base, TimestampMixin


class TripField(Base, TimestampMixin):
    """One top-level field of a shared trip document."""

    __tablename__ = "trip_fields"

    trip_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    field: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __table_args__ = (
        Index("idx_trip_field_version", "trip_id", "version"),
    )

    def __repr__(self) -> str:
        return f"<TripField(trip_id='{self.trip_id}', field='{self.field}', version={self.version})>"
