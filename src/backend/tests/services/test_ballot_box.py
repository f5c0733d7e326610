"""
Tests for the ballot box: eligibility checks and at-most-once casting.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from core.exceptions import (
    CandidateNotFound,
    DuplicateVote,
    ElectionNotFound,
    ElectionNotVotable,
    IdentityNotFound,
    InvalidAge,
    NotVerified,
)
from models.vote import Vote
from models.voter_participation import VoterParticipation
from repositories.vote_repository import VoteRepository
from repositories.voter_repository import VoterRepository
from services.ballot_box import BallotBox
from services.election_catalog import ElectionCatalog
from services.identity_registry import IdentityRegistry
from services.result_compiler import ResultCompiler


async def _vote_count(session, election_id: str) -> int:
    result = await session.execute(select(func.count(Vote.id)).where(Vote.election_id == election_id))
    return result.scalar() or 0


async def _participation_count(session, election_id: str) -> int:
    result = await session.execute(
        select(func.count(VoterParticipation.id)).where(VoterParticipation.election_id == election_id)
    )
    return result.scalar() or 0


@pytest.mark.integration
class TestCastVote:
    """Successful casting and receipts."""

    async def test_cast_returns_receipt_and_updates_state(
        self, db_session, create_verified_voter, create_election
    ) -> None:
        voter = await create_verified_voter()
        election = await create_election()
        candidate = election.candidates[0]

        receipt = await BallotBox(db_session).cast_vote(election.id, candidate.id, voter.id)

        assert receipt.election_name == "City Council 2026"
        assert receipt.candidate_name == "Alice Moreau"
        assert receipt.candidate_party == "Greens"
        assert receipt.vote_id

        refreshed = await ElectionCatalog(db_session).get(election.id)
        assert [c.vote_count for c in refreshed.candidates] == [1, 0]
        assert await _vote_count(db_session, election.id) == 1

        voter = await IdentityRegistry(db_session).get(voter.id)
        assert voter.voted_election_ids == [election.id]

    async def test_counter_sum_matches_vote_records(
        self, db_session, create_verified_voter, create_election
    ) -> None:
        election = await create_election()
        election_id = election.id
        candidate_ids = [c.id for c in election.candidates]
        box = BallotBox(db_session)

        for idx, national_id in enumerate(["100000000001", "100000000002", "100000000003"]):
            voter = await create_verified_voter(national_id=national_id)
            await box.cast_vote(election_id, candidate_ids[idx % 2], voter.id)

        refreshed = await ElectionCatalog(db_session).get(election_id)
        assert sum(c.vote_count for c in refreshed.candidates) == await _vote_count(db_session, election_id) == 3


@pytest.mark.integration
class TestCastVoteRejections:
    """Each failure kind, in check order."""

    async def test_unknown_voter(self, db_session, create_election) -> None:
        election = await create_election()

        with pytest.raises(IdentityNotFound):
            await BallotBox(db_session).cast_vote(election.id, election.candidates[0].id, "missing")

    async def test_unverified_voter(self, db_session, create_election) -> None:
        election = await create_election()
        election_id, candidate_id = election.id, election.candidates[0].id
        voter = await IdentityRegistry(db_session).find_or_create(national_id="123456789012", age=30)

        with pytest.raises(NotVerified):
            await BallotBox(db_session).cast_vote(election_id, candidate_id, voter.id)

    async def test_age_rechecked_at_cast_time(self, db_session, create_verified_voter, create_election) -> None:
        election = await create_election()
        voter = await create_verified_voter()
        voter.age = 16
        await db_session.commit()

        with pytest.raises(InvalidAge):
            await BallotBox(db_session).cast_vote(election.id, election.candidates[0].id, voter.id)

    async def test_unknown_election(self, db_session, create_verified_voter) -> None:
        voter = await create_verified_voter()

        with pytest.raises(ElectionNotFound):
            await BallotBox(db_session).cast_vote("missing", "candidate", voter.id)

    async def test_unknown_candidate(self, db_session, create_verified_voter, create_election) -> None:
        voter = await create_verified_voter()
        election = await create_election()

        with pytest.raises(CandidateNotFound):
            await BallotBox(db_session).cast_vote(election.id, "not-on-ballot", voter.id)

    async def test_candidate_from_other_election(self, db_session, create_verified_voter, create_election) -> None:
        voter = await create_verified_voter()
        first = await create_election(name="First")
        second = await create_election(name="Second")

        with pytest.raises(CandidateNotFound):
            await BallotBox(db_session).cast_vote(first.id, second.candidates[0].id, voter.id)

    async def test_active_status_before_window(self, db_session, create_verified_voter, create_election) -> None:
        voter = await create_verified_voter()
        election = await create_election(start=timedelta(hours=1), end=timedelta(hours=2), status="active")

        with pytest.raises(ElectionNotVotable):
            await BallotBox(db_session).cast_vote(election.id, election.candidates[0].id, voter.id)

    async def test_after_window(self, db_session, create_verified_voter, create_election, now) -> None:
        voter = await create_verified_voter()
        election = await create_election()

        with pytest.raises(ElectionNotVotable):
            await BallotBox(db_session).cast_vote(
                election.id, election.candidates[0].id, voter.id, now=now + timedelta(hours=2)
            )

    @pytest.mark.parametrize("status", ["upcoming", "completed"])
    async def test_non_active_status_inside_window(
        self, db_session, create_verified_voter, create_election, status: str
    ) -> None:
        voter = await create_verified_voter()
        election = await create_election(status=status)

        with pytest.raises(ElectionNotVotable):
            await BallotBox(db_session).cast_vote(election.id, election.candidates[0].id, voter.id)

    async def test_second_vote_rejected(self, db_session, create_verified_voter, create_election) -> None:
        voter = await create_verified_voter()
        election = await create_election()
        election_id, voter_id = election.id, voter.id
        first_candidate, second_candidate = (c.id for c in election.candidates)
        box = BallotBox(db_session)

        await box.cast_vote(election_id, first_candidate, voter_id)
        with pytest.raises(DuplicateVote):
            await box.cast_vote(election_id, second_candidate, voter_id)

        assert await _vote_count(db_session, election_id) == 1
        refreshed = await ElectionCatalog(db_session).get(election_id)
        assert [c.vote_count for c in refreshed.candidates] == [1, 0]


@pytest.mark.integration
class TestConcurrentCasts:
    """Racing casts for one (election, voter) pair."""

    async def test_exactly_one_of_n_concurrent_casts_succeeds(
        self, session_factory, create_verified_voter, create_election
    ) -> None:
        voter = await create_verified_voter()
        election = await create_election()
        election_id, voter_id = election.id, voter.id
        candidate_ids = [c.id for c in election.candidates]
        attempts = 8

        async def attempt(idx: int):
            async with session_factory() as session:
                return await BallotBox(session).cast_vote(election_id, candidate_ids[idx % 2], voter_id)

        outcomes = await asyncio.gather(*(attempt(i) for i in range(attempts)), return_exceptions=True)

        successes = [o for o in outcomes if not isinstance(o, BaseException)]
        duplicates = [o for o in outcomes if isinstance(o, DuplicateVote)]
        assert len(successes) == 1
        assert len(duplicates) == attempts - 1

        async with session_factory() as session:
            assert await _vote_count(session, election_id) == 1
            refreshed = await ElectionCatalog(session).get(election_id)
            assert sum(c.vote_count for c in refreshed.candidates) == 1


@pytest.mark.integration
class TestRecordingUnit:
    """The vote insert, counter increment and participation row succeed or fail together."""

    async def test_unique_constraint_rejects_when_precheck_misses(
        self, db_session, create_verified_voter, create_election
    ) -> None:
        # Another process may insert between our existence check and our insert
        voter = await create_verified_voter()
        election = await create_election()
        election_id, voter_id = election.id, voter.id
        first_candidate, second_candidate = (c.id for c in election.candidates)
        box = BallotBox(db_session)

        await box.cast_vote(election_id, first_candidate, voter_id)

        with patch.object(VoteRepository, "exists", AsyncMock(return_value=False)):
            with pytest.raises(DuplicateVote):
                await box.cast_vote(election_id, second_candidate, voter_id)

        assert await _vote_count(db_session, election_id) == 1
        assert await _participation_count(db_session, election_id) == 1
        refreshed = await ElectionCatalog(db_session).get(election_id)
        assert [c.vote_count for c in refreshed.candidates] == [1, 0]

    async def test_failed_participation_write_rolls_back_vote_and_counter(
        self, db_session, create_verified_voter, create_election
    ) -> None:
        voter = await create_verified_voter()
        election = await create_election()
        election_id, voter_id = election.id, voter.id
        candidate_id = election.candidates[0].id
        box = BallotBox(db_session)

        failing = AsyncMock(side_effect=RuntimeError("participation write failed"))
        with patch.object(VoterRepository, "add_participation", failing):
            with pytest.raises(RuntimeError):
                await box.cast_vote(election_id, candidate_id, voter_id)

        assert await _vote_count(db_session, election_id) == 0
        assert await _participation_count(db_session, election_id) == 0
        refreshed = await ElectionCatalog(db_session).get(election_id)
        assert [c.vote_count for c in refreshed.candidates] == [0, 0]

        receipt = await box.cast_vote(election_id, candidate_id, voter_id)
        assert receipt.candidate_name == "Alice Moreau"
        assert await _vote_count(db_session, election_id) == 1
        refreshed = await ElectionCatalog(db_session).get(election_id)
        assert [c.vote_count for c in refreshed.candidates] == [1, 0]

    async def test_insert_conflict_without_existing_vote_is_candidate_not_found(
        self, db_session, create_verified_voter, create_election
    ) -> None:
        # Candidate foreign key failure: the ballot was replaced mid-cast
        voter = await create_verified_voter()
        election = await create_election()
        election_id, voter_id = election.id, voter.id
        candidate_id = election.candidates[0].id

        conflict = IntegrityError("INSERT INTO votes", {}, Exception("FOREIGN KEY constraint failed"))
        with patch.object(VoteRepository, "create", AsyncMock(side_effect=conflict)):
            with pytest.raises(CandidateNotFound):
                await BallotBox(db_session).cast_vote(election_id, candidate_id, voter_id)

        assert await _vote_count(db_session, election_id) == 0
        refreshed = await ElectionCatalog(db_session).get(election_id)
        assert [c.vote_count for c in refreshed.candidates] == [0, 0]


@pytest.mark.integration
class TestElectionScenario:
    """Upcoming election opened by the organizer, then voted on."""

    async def test_full_lifecycle(self, db_session, create_verified_voter, now) -> None:
        catalog = ElectionCatalog(db_session)
        election = await catalog.create(
            name="Board seat",
            start_time=now + timedelta(hours=1),
            end_time=now + timedelta(hours=2),
            candidates=[{"name": "A", "party": "Alpha"}, {"name": "B", "party": "Beta"}],
            created_by="organizer-1",
            now=now,
        )
        election_id = election.id
        candidate_a, candidate_b = (c.id for c in election.candidates)
        assert election.status == "upcoming"

        voter = await create_verified_voter()
        voter_id = voter.id
        box = BallotBox(db_session)

        with pytest.raises(ElectionNotVotable):
            await box.cast_vote(election_id, candidate_a, voter_id, now=now)

        await catalog.set_status(election_id, "active")
        inside = now + timedelta(minutes=90)
        receipt = await box.cast_vote(election_id, candidate_a, voter_id, now=inside)
        assert receipt.candidate_name == "A"
        assert receipt.voted_at == inside

        with pytest.raises(DuplicateVote):
            await box.cast_vote(election_id, candidate_b, voter_id, now=inside)

        results = ResultCompiler.compile(await catalog.get(election_id))
        assert results.total_votes == 1
        assert [(c.name, c.percentage) for c in results.candidates] == [("A", 100.0), ("B", 0.0)]


@pytest.mark.integration
class TestHasVoted:
    async def test_has_voted(self, db_session, create_verified_voter, create_election) -> None:
        voter = await create_verified_voter()
        election = await create_election()
        box = BallotBox(db_session)

        assert await box.has_voted(election.id, voter.id) is False
        await box.cast_vote(election.id, election.candidates[1].id, voter.id)
        assert await box.has_voted(election.id, voter.id) is True
