"""
Voter identity and verification schemas.

Format checks that map to domain errors (national identifier, age) are
left to the identity registry so callers get InvalidIdentifier/InvalidAge
instead of a generic validation error.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class ChallengeRequest(BaseModel):
    """Start (or restart) identity verification."""

    national_id: str = Field(..., description="12-digit national identifier")
    age: int
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$", description="10-digit phone number")
    email: Optional[EmailStr] = None


class VerifyRequest(BaseModel):
    """Submit a one-time code."""

    voter_id: str
    code: str = Field(..., max_length=12)


class ResendRequest(BaseModel):
    """Request a fresh one-time code."""

    voter_id: str


class ChallengeIssued(BaseModel):
    """Response after a code has been issued."""

    voter_id: str
    channel: str = Field(..., description="Delivery channel attempted: sms, email or none")
    expires_at: datetime
    message: str
    debug_code: Optional[str] = Field(None, description="Only present in local development")


class IdentitySummary(BaseModel):
    """Public view of a voter identity. The one-time code is never included."""

    id: str
    name: str
    age: int
    is_verified: bool
    last_verified_at: Optional[datetime] = None
    voted_election_ids: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class VotedElection(BaseModel):
    """An election the voter took part in."""

    id: str
    name: str
    category: str
    voted_at: datetime


class VoterProfile(IdentitySummary):
    """Identity summary with participation history."""

    has_phone: bool = False
    has_email: bool = False
    elections: list[VotedElection] = Field(default_factory=list)
