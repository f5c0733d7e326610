"""
Vote repository for database operations.

Vote rows are insert-only; the (election_id, voter_id) unique constraint
rejects a second vote for the same pair.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.vote import Vote

logger = logging.getLogger(__name__)


class VoteRepository:
    """Repository for vote database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, election_id: str, voter_id: str) -> Optional[Vote]:
        """Get the vote a voter cast in an election, if any."""
        result = await self.db.execute(
            select(Vote).where(and_(Vote.election_id == election_id, Vote.voter_id == voter_id))
        )
        return result.scalar_one_or_none()

    async def exists(self, election_id: str, voter_id: str) -> bool:
        """Check if a vote exists for the (election, voter) pair."""
        result = await self.db.execute(
            select(func.count(Vote.id)).where(
                and_(Vote.election_id == election_id, Vote.voter_id == voter_id)
            )
        )
        count = result.scalar() or 0
        return count > 0

    async def create(
        self,
        election_id: str,
        voter_id: str,
        candidate_id: str,
        cast_at: Optional[datetime] = None,
    ) -> Vote:
        """
        Insert a vote record.

        The insert is flushed on its own so a unique-constraint violation
        surfaces here as IntegrityError, before any other write.
        """
        vote = Vote(
            id=str(uuid4()),
            election_id=election_id,
            voter_id=voter_id,
            candidate_id=candidate_id,
        )
        if cast_at is not None:
            vote.cast_at = cast_at

        self.db.add(vote)
        await self.db.flush()

        return vote

    async def count_by_election(self, election_id: str) -> int:
        """Get total vote records for an election."""
        result = await self.db.execute(
            select(func.count(Vote.id)).where(Vote.election_id == election_id)
        )
        return result.scalar() or 0

    async def count_by_candidate(self, election_id: str) -> dict[str, int]:
        """Get vote record counts per candidate for an election."""
        result = await self.db.execute(
            select(Vote.candidate_id, func.count(Vote.id))
            .where(Vote.election_id == election_id)
            .group_by(Vote.candidate_id)
        )
        return {row[0]: row[1] for row in result.all()}

    async def count_all(self) -> int:
        """Get the total number of votes across all elections."""
        result = await self.db.execute(select(func.count(Vote.id)))
        return result.scalar() or 0
