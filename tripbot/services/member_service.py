"""Service for the trip roster."""

import logging
import uuid
from typing import List, Optional

from pydantic import ValidationError

from tripbot.ledger.exceptions import LedgerValidationError, StoreWriteError
from tripbot.ledger.expenses import validation_messages
from tripbot.ledger.models import Member
from tripbot.store.repositories import TripRepositories

logger = logging.getLogger(__name__)


class MemberService:
    """Roster operations. The ledger only references members by id."""

    def __init__(self, repos: TripRepositories):
        self.repos = repos

    async def list_members(self) -> List[Member]:
        return await self.repos.members.load()

    async def add_member(self, name: str, member_id: Optional[str] = None) -> Member:
        """
        Add a member, or return the existing one with the same id.

        Args:
            name: Display name
            member_id: Stable id (Telegram user id for chat members);
                generated for members without an account
        """
        members = await self.repos.members.load()
        if member_id is not None:
            existing = next((m for m in members if m.id == member_id), None)
            if existing is not None:
                return existing

        try:
            member = Member(id=member_id or uuid.uuid4().hex[:12], name=name.strip())
        except ValidationError as e:
            raise LedgerValidationError(validation_messages(e)) from e

        members.append(member)
        if not await self.repos.members.save(members):
            raise StoreWriteError(self.repos.members.field)

        logger.info(f"Member {member.id} ({member.name}) added")
        return member

    async def remove_member(self, member_id: str) -> bool:
        members = await self.repos.members.load()
        remaining = [m for m in members if m.id != member_id]
        if len(remaining) == len(members):
            return False

        if not await self.repos.members.save(remaining):
            raise StoreWriteError(self.repos.members.field)

        logger.info(f"Member {member_id} removed")
        return True

    async def find_member(self, query: str) -> Optional[Member]:
        """Look a member up by id or, case-insensitively, by name."""
        query = query.strip()
        members = await self.repos.members.load()
        for member in members:
            if member.id == query:
                return member
        lowered = query.lower()
        for member in members:
            if member.name.lower() == lowered:
                return member
        return None
