"""
Public election endpoints: browsing, voting and results.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_db
from models.election import ElectionStatus
from schemas.converters import election_model_to_public
from schemas.election import ElectionPublic, ElectionResults
from schemas.vote import VoteCreate, VoteReceipt, VoteStatus
from services.ballot_box import BallotBox
from services.election_catalog import ElectionCatalog
from services.result_compiler import ResultCompiler

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=list[ElectionPublic])
async def list_elections(
    db: AsyncSession = Depends(get_db),
    status_filter: Optional[str] = Query(
        ElectionStatus.ACTIVE.value,
        alias="status",
        description="active returns votable elections; other values filter by stored status",
    ),
) -> list[ElectionPublic]:
    """List elections for voters. Candidate counters are omitted."""
    catalog = ElectionCatalog(db)
    now = datetime.now(timezone.utc)

    if not status_filter or status_filter == ElectionStatus.ACTIVE.value:
        elections = await catalog.list_votable(now)
    else:
        elections, _ = await catalog.list_elections(status=status_filter, page=1, per_page=100)

    return [election_model_to_public(e, now) for e in elections]


@router.get("/{election_id}", response_model=ElectionPublic)
async def get_election(
    election_id: str,
    db: AsyncSession = Depends(get_db),
) -> ElectionPublic:
    """Get a single election (no counters)."""
    election = await ElectionCatalog(db).get(election_id)
    return election_model_to_public(election)


@router.post("/{election_id}/votes", response_model=VoteReceipt, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    election_id: str,
    vote: VoteCreate,
    db: AsyncSession = Depends(get_db),
) -> VoteReceipt:
    """Cast the voter's single vote in an election."""
    receipt = await BallotBox(db).cast_vote(
        election_id=election_id,
        candidate_id=vote.candidate_id,
        voter_id=vote.voter_id,
    )

    return VoteReceipt(
        vote_id=receipt.vote_id,
        election_id=receipt.election_id,
        election_name=receipt.election_name,
        candidate_id=receipt.candidate_id,
        candidate_name=receipt.candidate_name,
        candidate_party=receipt.candidate_party,
        voted_at=receipt.voted_at,
    )


@router.get("/{election_id}/votes/status", response_model=VoteStatus)
async def get_vote_status(
    election_id: str,
    voter_id: str = Query(..., description="Voter identity reference"),
    db: AsyncSession = Depends(get_db),
) -> VoteStatus:
    """Whether the voter has already voted (the choice is not revealed)."""
    has_voted = await BallotBox(db).has_voted(election_id, voter_id)
    return VoteStatus(election_id=election_id, voter_id=voter_id, has_voted=has_voted)


@router.get("/{election_id}/results", response_model=ElectionResults)
async def get_results(
    election_id: str,
    db: AsyncSession = Depends(get_db),
) -> ElectionResults:
    """Ranked, percentage-annotated tally."""
    election = await ElectionCatalog(db).get(election_id)
    return ResultCompiler.compile(election)
