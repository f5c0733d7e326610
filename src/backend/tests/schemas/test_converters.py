"""
Tests for schema converter functions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from models.election import Candidate, Election
from schemas.converters import election_model_to_admin, election_model_to_public


def _election(status: str = "active") -> Election:
    now = datetime.now(timezone.utc)
    return Election(
        id="election-1",
        name="Mayor",
        description="City-wide",
        start_time=now - timedelta(hours=1),
        end_time=now + timedelta(hours=1),
        category="municipal",
        locality="Springfield",
        status=status,
        created_by="organizer-1",
        created_at=now,
        updated_at=now,
        candidates=[
            Candidate(id="c2", name="Bram", party="CU", position=1, vote_count=4),
            Candidate(id="c1", name="Alice", party="Greens", position=0, vote_count=6),
        ],
    )


@pytest.mark.unit
class TestElectionConverters:
    def test_public_view_omits_counters_and_orders_ballot(self) -> None:
        result = election_model_to_public(_election())

        assert [c.id for c in result.candidates] == ["c1", "c2"]
        assert "vote_count" not in result.candidates[0].model_dump()
        assert result.is_votable is True
        assert result.locality == "Springfield"

    def test_public_view_not_votable_when_upcoming(self) -> None:
        assert election_model_to_public(_election(status="upcoming")).is_votable is False

    def test_admin_view_includes_counters(self) -> None:
        result = election_model_to_admin(_election())

        assert [c.vote_count for c in result.candidates] == [6, 4]
        assert result.total_votes == 10
        assert result.created_by == "organizer-1"
