"""
Voter repository for database operations.

Voters are looked up by national identifier; contact channels are
encrypted columns and cannot be searched.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.types import utcnow
from models.voter import Voter
from models.voter_participation import VoterParticipation

logger = logging.getLogger(__name__)


class VoterRepository:
    """Repository for voter database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_by_id(self, voter_id: str) -> Optional[Voter]:
        """Get a voter by ID."""
        result = await self.db.execute(
            select(Voter).where(Voter.id == voter_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_national_id(self, national_id: str) -> Optional[Voter]:
        """Get a voter by national identifier."""
        result = await self.db.execute(select(Voter).where(Voter.national_id == national_id))
        return result.scalar_one_or_none()

    async def create(
        self,
        national_id: str,
        name: str,
        age: int,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Voter:
        """Create an unverified voter."""
        voter = Voter(
            id=str(uuid4()),
            national_id=national_id,
            name=name,
            age=age,
            phone=phone,
            email=email,
            is_verified=False,
            participations=[],
        )

        self.db.add(voter)
        await self.db.flush()

        return voter

    async def update_profile(
        self,
        voter: Voter,
        age: int,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Voter:
        """Update age and any supplied contact channels in place."""
        voter.age = age
        if phone is not None:
            voter.phone = phone
        if email is not None:
            voter.email = email

        await self.db.flush()
        return voter

    async def set_challenge(self, voter_id: str, code: str, expires_at: datetime) -> bool:
        """Store a challenge, replacing any live one."""
        result = await self.db.execute(
            update(Voter)
            .where(Voter.id == voter_id)
            .values(otp_code=code, otp_expires_at=expires_at, updated_at=utcnow())
        )
        return self._get_rowcount(result) > 0

    async def consume_challenge(self, voter_id: str, code: str) -> bool:
        """
        Clear the stored challenge only if it still holds the given code.

        Returns False when another request already consumed or replaced it.
        """
        result = await self.db.execute(
            update(Voter)
            .where(and_(Voter.id == voter_id, Voter.otp_code == code))
            .values(otp_code=None, otp_expires_at=None, updated_at=utcnow())
        )
        return self._get_rowcount(result) > 0

    async def mark_verified(self, voter_id: str, verified_at: datetime) -> bool:
        """Set the verification flag and timestamp."""
        result = await self.db.execute(
            update(Voter)
            .where(Voter.id == voter_id)
            .values(is_verified=True, last_verified_at=verified_at, updated_at=utcnow())
        )
        return self._get_rowcount(result) > 0

    async def add_participation(
        self, voter_id: str, election_id: str, voted_at: Optional[datetime] = None
    ) -> VoterParticipation:
        """Append an election to the voter's voted-elections set."""
        participation = VoterParticipation(
            id=str(uuid4()),
            voter_id=voter_id,
            election_id=election_id,
            voted_at=voted_at or utcnow(),
        )
        self.db.add(participation)
        await self.db.flush()
        return participation

    async def has_participated(self, voter_id: str, election_id: str) -> bool:
        """Check if the voter's voted-elections set contains the election."""
        result = await self.db.execute(
            select(func.count(VoterParticipation.id)).where(
                and_(
                    VoterParticipation.voter_id == voter_id,
                    VoterParticipation.election_id == election_id,
                )
            )
        )
        return (result.scalar() or 0) > 0

    async def list_participation(self, voter_id: str) -> list[VoterParticipation]:
        """Get the voter's participation rows, oldest first."""
        result = await self.db.execute(
            select(VoterParticipation)
            .where(VoterParticipation.voter_id == voter_id)
            .order_by(VoterParticipation.voted_at.asc())
        )
        return list(result.scalars().all())
