"""
Ballot box service.

Enforces one vote per identity per election. The existence check and the
Vote insert for an (election, voter) pair run under a per-pair asyncio
lock inside this process, and the ``uq_votes_election_voter`` unique
constraint arbitrates between processes. The Vote insert, the candidate
counter increment and the participation append are committed together.
"""

import asyncio
import weakref
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    CandidateNotFound,
    DuplicateVote,
    ElectionNotFound,
    ElectionNotVotable,
    IdentityNotFound,
    InvalidAge,
    NotVerified,
)
from db.session import storage_errors
from repositories.election_repository import ElectionRepository
from repositories.vote_repository import VoteRepository
from repositories.voter_repository import VoterRepository
from services.election_catalog import ElectionCatalog

logger = structlog.get_logger(__name__)

# Live locks keyed by (election_id, voter_id); entries vanish once unused
_pair_locks: "weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()


def _pair_lock(election_id: str, voter_id: str) -> asyncio.Lock:
    key = (election_id, voter_id)
    lock = _pair_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _pair_locks[key] = lock
    return lock


@dataclass
class VoteReceipt:
    """Proof of a recorded vote."""

    vote_id: str
    election_id: str
    election_name: str
    candidate_id: str
    candidate_name: str
    candidate_party: str
    voted_at: datetime


class BallotBox:
    """Cast votes and answer has-voted queries."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.voters = VoterRepository(db)
        self.elections = ElectionRepository(db)
        self.votes = VoteRepository(db)

    async def cast_vote(
        self,
        election_id: str,
        candidate_id: str,
        voter_id: str,
        now: Optional[datetime] = None,
    ) -> VoteReceipt:
        """
        Record a vote.

        Raises:
            IdentityNotFound, NotVerified, InvalidAge: voter checks
            ElectionNotFound, ElectionNotVotable: election checks
            CandidateNotFound: candidate is not on this ballot
            DuplicateVote: a vote already exists for this (election, voter)
            StorageUnavailable: transient storage failure
        """
        now = now or datetime.now(timezone.utc)

        with storage_errors("cast_vote_lookup"):
            voter = await self.voters.get_by_id(voter_id)
            if voter is None:
                raise IdentityNotFound()
            if not voter.is_verified:
                raise NotVerified()
            if voter.age < settings.MINIMUM_VOTING_AGE:
                raise InvalidAge()

            election = await self.elections.get_by_id(election_id)
            if election is None:
                raise ElectionNotFound()

        if not ElectionCatalog.is_votable(election, now):
            raise ElectionNotVotable()

        candidate = election.find_candidate(candidate_id)
        if candidate is None:
            raise CandidateNotFound()

        # Snapshot before any rollback can expire the loaded instances
        election_name = election.name
        candidate_name, candidate_party = candidate.name, candidate.party

        async with _pair_lock(election_id, voter_id):
            with storage_errors("cast_vote"):
                try:
                    vote_id = await self._record(election_id, candidate_id, voter_id, now)
                except Exception:
                    await self.db.rollback()
                    raise

        logger.info(
            "vote_cast",
            election_id=election_id,
            candidate_id=candidate_id,
            voter_id=voter_id,
        )
        return VoteReceipt(
            vote_id=vote_id,
            election_id=election_id,
            election_name=election_name,
            candidate_id=candidate_id,
            candidate_name=candidate_name,
            candidate_party=candidate_party,
            voted_at=now,
        )

    async def _record(self, election_id: str, candidate_id: str, voter_id: str, now: datetime) -> str:
        """Check-then-insert and apply the three writes as one transaction."""
        if await self.votes.exists(election_id, voter_id):
            logger.info("duplicate_vote_rejected", election_id=election_id, voter_id=voter_id)
            raise DuplicateVote()

        try:
            vote = await self.votes.create(election_id, voter_id, candidate_id, cast_at=now)
        except IntegrityError as e:
            # Either the pair constraint or the candidate foreign key, when the
            # ballot was replaced under us; the existing row tells them apart
            await self.db.rollback()
            if await self.votes.get(election_id, voter_id) is not None:
                logger.info("duplicate_vote_constraint", election_id=election_id, voter_id=voter_id)
                raise DuplicateVote() from e
            logger.info("vote_candidate_gone", election_id=election_id, candidate_id=candidate_id)
            raise CandidateNotFound() from e

        vote_id = vote.id

        if not await self.elections.increment_vote_count(election_id, candidate_id):
            # Candidate vanished between lookup and write
            raise CandidateNotFound()

        await self.voters.add_participation(voter_id, election_id, voted_at=now)
        await self.db.commit()
        return vote_id

    async def has_voted(self, election_id: str, voter_id: str) -> bool:
        """Whether a Vote record exists for the pair."""
        with storage_errors("has_voted"):
            return await self.votes.exists(election_id, voter_id)
