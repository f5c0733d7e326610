"""
Identity registry service.

Owns voter identity records keyed by national identifier. Identities are
created on the first verification attempt and updated in place on later
attempts; they are never deleted in normal operation.
"""

import re
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import IdentityNotFound, InvalidAge, InvalidIdentifier
from core.security import mask_value
from db.session import storage_errors
from models.election import Election
from models.voter import Voter
from repositories.election_repository import ElectionRepository
from repositories.voter_repository import VoterRepository

logger = structlog.get_logger(__name__)


def is_valid_national_id(national_id: Optional[str]) -> bool:
    """Fixed-length, ASCII digits only."""
    if not national_id:
        return False
    return re.fullmatch(rf"[0-9]{{{settings.NATIONAL_ID_LENGTH}}}", national_id) is not None


def default_display_name(national_id: str) -> str:
    return f"Voter-{national_id[-4:]}"


class IdentityRegistry:
    """Find, create and verify voter identities."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.voters = VoterRepository(db)
        self.elections = ElectionRepository(db)

    @staticmethod
    def validate(national_id: Optional[str], age: int) -> None:
        """Raise InvalidIdentifier or InvalidAge before touching storage."""
        if not is_valid_national_id(national_id):
            raise InvalidIdentifier(f"National identifier must be {settings.NATIONAL_ID_LENGTH} digits")
        if age < settings.MINIMUM_VOTING_AGE:
            raise InvalidAge(f"You must be {settings.MINIMUM_VOTING_AGE} or older to vote")

    async def find_or_create(
        self,
        national_id: str,
        age: int,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Voter:
        """
        Return the identity for a national identifier, creating it if needed.

        An existing identity has its age and supplied contact fields updated.
        A concurrent first-time registration for the same identifier loses
        the insert race and falls back to the winner's row.
        """
        self.validate(national_id, age)

        with storage_errors("find_or_create_identity"):
            voter = await self.voters.get_by_national_id(national_id)
            if voter is not None:
                await self.voters.update_profile(voter, age=age, phone=phone, email=email)
                await self.db.commit()
                logger.info("identity_updated", voter_id=voter.id)
                return voter

            try:
                voter = await self.voters.create(
                    national_id=national_id,
                    name=default_display_name(national_id),
                    age=age,
                    phone=phone,
                    email=email,
                )
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                voter = await self.voters.get_by_national_id(national_id)
                if voter is None:
                    raise
                await self.voters.update_profile(voter, age=age, phone=phone, email=email)
                await self.db.commit()
                logger.info("identity_registration_race_resolved", voter_id=voter.id)
                return voter

        logger.info("identity_created", voter_id=voter.id, national_id=mask_value(national_id))
        return voter

    async def get(self, voter_id: str) -> Voter:
        """Get an identity by ID or raise IdentityNotFound."""
        with storage_errors("get_identity"):
            voter = await self.voters.get_by_id(voter_id)
        if voter is None:
            raise IdentityNotFound()
        return voter

    async def mark_verified(self, voter: Voter, now: Optional[datetime] = None) -> Voter:
        """Set the verification flag after a successful challenge."""
        now = now or datetime.now(timezone.utc)
        with storage_errors("mark_verified"):
            await self.voters.mark_verified(voter.id, now)
            await self.db.commit()
            refreshed = await self.voters.get_by_id(voter.id)

        logger.info("identity_verified", voter_id=voter.id)
        return refreshed or voter

    async def has_voted(self, voter_id: str, election_id: str) -> bool:
        """Membership check against the voter's voted-elections set."""
        with storage_errors("has_voted"):
            return await self.voters.has_participated(voter_id, election_id)

    async def voted_elections(self, voter: Voter) -> list[tuple[Election, datetime]]:
        """Elections the voter took part in with the time of the vote, oldest first."""
        with storage_errors("voted_elections"):
            participation = await self.voters.list_participation(voter.id)
            elections = await self.elections.get_by_ids([p.election_id for p in participation])

        by_id = {e.id: e for e in elections}
        return [(by_id[p.election_id], p.voted_at) for p in participation if p.election_id in by_id]
