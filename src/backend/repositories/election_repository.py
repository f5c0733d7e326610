"""
Election repository for database operations.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.election import Candidate, Election
from models.vote import Vote
from models.voter_participation import VoterParticipation

logger = logging.getLogger(__name__)


class ElectionRepository:
    """Repository for election and candidate database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_by_id(self, election_id: str) -> Optional[Election]:
        """
        Get an election with its candidates.

        populate_existing refreshes counters that were changed by atomic
        UPDATEs since the election was last loaded in this session.
        """
        result = await self.db.execute(
            select(Election)
            .options(selectinload(Election.candidates))
            .where(Election.id == election_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def lock(self, election_id: str) -> bool:
        """
        Take a row lock on the election for the rest of the transaction.

        Vote inserts take a key-share lock on the election through their
        foreign key, so they wait for (or are waited on by) this lock.
        SQLite ignores FOR UPDATE and serializes writers instead.
        """
        result = await self.db.execute(
            select(Election.id).where(Election.id == election_id).with_for_update()
        )
        return result.scalar_one_or_none() is not None

    async def get_by_ids(self, election_ids: list[str]) -> list[Election]:
        """Get several elections (unordered)."""
        if not election_ids:
            return []
        result = await self.db.execute(
            select(Election).options(selectinload(Election.candidates)).where(Election.id.in_(election_ids))
        )
        return list(result.scalars().all())

    async def list_elections(
        self,
        page: int = 1,
        per_page: int = 20,
        status: Optional[str] = None,
        category: Optional[str] = None,
    ) -> tuple[list[Election], int]:
        """List elections, newest first, with pagination."""
        query = select(Election).options(selectinload(Election.candidates))
        count_query = select(func.count(Election.id))

        if status:
            query = query.where(Election.status == status)
            count_query = count_query.where(Election.status == status)

        if category:
            query = query.where(Election.category == category)
            count_query = count_query.where(Election.category == category)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Election.created_at.desc())
        query = query.offset((page - 1) * per_page).limit(per_page)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def list_open(self, status: str, now: datetime) -> list[Election]:
        """Elections with the given stored status whose window contains now."""
        result = await self.db.execute(
            select(Election)
            .options(selectinload(Election.candidates))
            .where(
                and_(
                    Election.status == status,
                    Election.start_time <= now,
                    Election.end_time >= now,
                )
            )
            .order_by(Election.end_time.asc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        name: str,
        description: str,
        start_time: datetime,
        end_time: datetime,
        category: str,
        status: str,
        created_by: str,
        candidates: list[tuple[str, str]],
        locality: Optional[str] = None,
    ) -> Election:
        """Create an election with its ordered candidates."""
        election = Election(
            id=str(uuid4()),
            name=name,
            description=description,
            start_time=start_time,
            end_time=end_time,
            category=category,
            locality=locality,
            status=status,
            created_by=created_by,
            candidates=[
                Candidate(id=str(uuid4()), name=cand_name, party=party, position=idx, vote_count=0)
                for idx, (cand_name, party) in enumerate(candidates)
            ],
        )

        self.db.add(election)
        await self.db.flush()

        return election

    async def replace_candidates(self, election: Election, candidates: list[tuple[str, str]]) -> Election:
        """Replace the candidate list (only valid before any vote exists)."""
        election.candidates = [
            Candidate(id=str(uuid4()), name=cand_name, party=party, position=idx, vote_count=0)
            for idx, (cand_name, party) in enumerate(candidates)
        ]
        await self.db.flush()
        return election

    async def update_status(self, election_id: str, status: str) -> bool:
        """Update election status."""
        result = await self.db.execute(
            update(Election).where(Election.id == election_id).values(status=status)
        )
        return self._get_rowcount(result) > 0

    async def increment_vote_count(self, election_id: str, candidate_id: str) -> bool:
        """Atomically add one vote to a candidate's counter."""
        result = await self.db.execute(
            update(Candidate)
            .where(and_(Candidate.id == candidate_id, Candidate.election_id == election_id))
            .values(vote_count=Candidate.vote_count + 1)
        )
        return self._get_rowcount(result) == 1

    async def delete(self, election_id: str) -> bool:
        """Delete an election together with its votes and participation rows."""
        await self.db.execute(delete(Vote).where(Vote.election_id == election_id))
        await self.db.execute(
            delete(VoterParticipation).where(VoterParticipation.election_id == election_id)
        )
        await self.db.execute(delete(Candidate).where(Candidate.election_id == election_id))
        result = await self.db.execute(delete(Election).where(Election.id == election_id))
        deleted = self._get_rowcount(result) > 0
        if deleted:
            logger.info(f"Deleted election {election_id}")
        return deleted

    async def count_by_status(self) -> dict[str, int]:
        """Count elections per stored status."""
        result = await self.db.execute(
            select(Election.status, func.count(Election.id)).group_by(Election.status)
        )
        return {row[0]: row[1] for row in result.all()}

    async def count_by_category(self) -> dict[str, int]:
        """Count elections per category."""
        result = await self.db.execute(
            select(Election.category, func.count(Election.id)).group_by(Election.category)
        )
        return {row[0]: row[1] for row in result.all()}

    async def get_recent(self, limit: int = 5) -> list[Election]:
        """Get the most recently created elections."""
        result = await self.db.execute(
            select(Election)
            .options(selectinload(Election.candidates))
            .order_by(Election.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
