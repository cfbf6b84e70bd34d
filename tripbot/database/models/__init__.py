"""Database models for the trip bot."""

from tripbot.database.models.trip_field import TripField

__all__ = ["TripField"]
