"""Middlewares package."""

from tripbot.middlewares.auth import AuthMiddleware
from tripbot.middlewares.trip import TripMiddleware

__all__ = ["AuthMiddleware", "TripMiddleware"]
