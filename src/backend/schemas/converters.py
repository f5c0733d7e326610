"""
Schema converter functions.

Single source of truth for election model -> schema conversions, shared by
the public and organizer endpoints.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from models.election import ElectionCategory, ElectionStatus
from schemas.election import (
    CandidatePublic,
    CandidateWithVotes,
    ElectionAdmin,
    ElectionPublic,
)
from services.election_catalog import ElectionCatalog

if TYPE_CHECKING:
    from models.election import Election


def election_model_to_public(election: "Election", now: Optional[datetime] = None) -> ElectionPublic:
    """Convert an Election model to the voter-facing schema (no counters)."""
    return ElectionPublic(
        id=election.id,
        name=election.name,
        description=election.description or "",
        start_time=election.start_time,
        end_time=election.end_time,
        category=ElectionCategory(election.category),
        locality=election.locality,
        status=ElectionStatus(election.status),
        is_votable=ElectionCatalog.is_votable(election, now),
        candidates=[
            CandidatePublic(id=c.id, name=c.name, party=c.party, position=c.position)
            for c in sorted(election.candidates, key=lambda x: x.position)
        ],
    )


def election_model_to_admin(election: "Election", now: Optional[datetime] = None) -> ElectionAdmin:
    """Convert an Election model to the organizer schema (with counters)."""
    candidates = sorted(election.candidates, key=lambda x: x.position)
    return ElectionAdmin(
        id=election.id,
        name=election.name,
        description=election.description or "",
        start_time=election.start_time,
        end_time=election.end_time,
        category=ElectionCategory(election.category),
        locality=election.locality,
        status=ElectionStatus(election.status),
        is_votable=ElectionCatalog.is_votable(election, now),
        candidates=[
            CandidateWithVotes(
                id=c.id,
                name=c.name,
                party=c.party,
                position=c.position,
                vote_count=c.vote_count,
            )
            for c in candidates
        ],
        total_votes=sum(c.vote_count for c in candidates),
        created_by=election.created_by,
        created_at=election.created_at,
        updated_at=election.updated_at,
    )
