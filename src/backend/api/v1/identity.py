"""
Identity verification endpoints.

A voter starts with a challenge (national ID + age + optional contacts),
proves control of a contact channel with the one-time code, and can then
vote. Codes are never logged.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.session import get_db
from models.voter import Voter
from schemas.voter import (
    ChallengeIssued,
    ChallengeRequest,
    IdentitySummary,
    ResendRequest,
    VerifyRequest,
    VotedElection,
    VoterProfile,
)
from services.challenge_service import CHANNEL_NONE, ChallengeService, IssuedChallenge
from services.identity_registry import IdentityRegistry

logger = structlog.get_logger(__name__)

router = APIRouter()


def _issued_response(voter: Voter, issued: IssuedChallenge) -> ChallengeIssued:
    if issued.channel == CHANNEL_NONE:
        message = "Verification code generated. No contact channel on file; request a resend after adding one."
    else:
        message = f"Verification code sent via {issued.channel}"

    return ChallengeIssued(
        voter_id=voter.id,
        channel=issued.channel,
        expires_at=issued.expires_at,
        message=message,
        debug_code=issued.code if settings.debug_otp_enabled else None,
    )


@router.post("/challenge", response_model=ChallengeIssued)
async def request_challenge(
    request: ChallengeRequest,
    db: AsyncSession = Depends(get_db),
) -> ChallengeIssued:
    """Register (or refresh) an identity and send it a one-time code."""
    registry = IdentityRegistry(db)
    voter = await registry.find_or_create(
        national_id=request.national_id,
        age=request.age,
        phone=request.phone,
        email=str(request.email) if request.email else None,
    )

    issued = await ChallengeService(db).issue(voter)
    return _issued_response(voter, issued)


@router.post("/challenge/verify", response_model=IdentitySummary)
async def verify_challenge(
    request: VerifyRequest,
    db: AsyncSession = Depends(get_db),
) -> IdentitySummary:
    """Check a one-time code and mark the identity verified."""
    registry = IdentityRegistry(db)
    voter = await registry.get(request.voter_id)

    await ChallengeService(db).verify(voter, request.code)
    voter = await registry.mark_verified(voter)

    return IdentitySummary.model_validate(voter)


@router.post("/challenge/resend", response_model=ChallengeIssued)
async def resend_challenge(
    request: ResendRequest,
    db: AsyncSession = Depends(get_db),
) -> ChallengeIssued:
    """Discard the current code and send a new one."""
    voter = await IdentityRegistry(db).get(request.voter_id)
    issued = await ChallengeService(db).resend(voter)
    return _issued_response(voter, issued)


@router.get("/{voter_id}", response_model=VoterProfile)
async def get_voter_profile(
    voter_id: str,
    db: AsyncSession = Depends(get_db),
) -> VoterProfile:
    """Identity summary with the elections voted in, oldest first."""
    registry = IdentityRegistry(db)
    voter = await registry.get(voter_id)
    history = await registry.voted_elections(voter)

    return VoterProfile(
        id=voter.id,
        name=voter.name,
        age=voter.age,
        is_verified=voter.is_verified,
        last_verified_at=voter.last_verified_at,
        voted_election_ids=voter.voted_election_ids,
        has_phone=bool(voter.phone),
        has_email=bool(voter.email),
        elections=[
            VotedElection(id=e.id, name=e.name, category=e.category, voted_at=voted_at) for e, voted_at in history
        ],
    )
