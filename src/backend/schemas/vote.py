"""
Vote-related Pydantic schemas.
"""

from datetime import datetime

from pydantic import BaseModel


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    candidate_id: str
    voter_id: str


class VoteReceipt(BaseModel):
    """Receipt returned after a vote is recorded."""

    vote_id: str
    election_id: str
    election_name: str
    candidate_id: str
    candidate_name: str
    candidate_party: str
    voted_at: datetime
    message: str = "Vote cast successfully"


class VoteStatus(BaseModel):
    """Whether a voter has already voted in an election (choice not revealed)."""

    election_id: str
    voter_id: str
    has_voted: bool
