"""Database package."""

from tripbot.database.base import Base
from tripbot.database.session import DatabaseSessionManager, sessionmanager
from tripbot.database import models

__all__ = ["Base", "DatabaseSessionManager", "sessionmanager", "models"]
