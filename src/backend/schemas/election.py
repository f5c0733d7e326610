"""
Election-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.election import ElectionCategory, ElectionStatus


class CandidateCreate(BaseModel):
    """Candidate on a new ballot. Both fields are required by the catalog."""

    name: Optional[str] = Field(None, max_length=200)
    party: Optional[str] = Field(None, max_length=200)


class ElectionCreate(BaseModel):
    """Schema for creating an election."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    start_time: datetime
    end_time: datetime
    category: ElectionCategory = ElectionCategory.NATIONAL
    locality: Optional[str] = Field(None, max_length=200)
    candidates: list[CandidateCreate] = Field(default_factory=list)
    status: Optional[str] = Field(None, description="Optional explicit status override")


class ElectionUpdate(BaseModel):
    """Partial update of an election. Omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    category: Optional[ElectionCategory] = None
    locality: Optional[str] = Field(None, max_length=200)
    candidates: Optional[list[CandidateCreate]] = None


class StatusUpdate(BaseModel):
    """Explicit lifecycle transition."""

    status: str


class CandidatePublic(BaseModel):
    """Candidate as shown to voters (counter omitted)."""

    id: str
    name: str
    party: str
    position: int = 0

    model_config = {"from_attributes": True}


class CandidateWithVotes(CandidatePublic):
    """Candidate with its vote counter (organizer view)."""

    vote_count: int = 0


class ElectionPublic(BaseModel):
    """Election as shown to voters."""

    id: str
    name: str
    description: str = ""
    start_time: datetime
    end_time: datetime
    category: ElectionCategory
    locality: Optional[str] = None
    status: ElectionStatus
    is_votable: bool = False
    candidates: list[CandidatePublic] = Field(default_factory=list)


class ElectionAdmin(ElectionPublic):
    """Election with counters and ownership (organizer view)."""

    candidates: list[CandidateWithVotes] = Field(default_factory=list)
    total_votes: int = 0
    created_by: str
    created_at: datetime
    updated_at: datetime


class ElectionListResponse(BaseModel):
    """Paginated election list."""

    elections: list[ElectionAdmin]
    total: int
    page: int
    per_page: int


class CandidateResult(BaseModel):
    """Ranked, percentage-annotated tally for one candidate."""

    id: str
    name: str
    party: str
    votes: int
    percentage: float
    rank: int


class ElectionResults(BaseModel):
    """Compiled results for an election."""

    election_id: str
    name: str
    description: str = ""
    status: ElectionStatus
    total_votes: int
    candidates: list[CandidateResult]


class ElectionSummary(BaseModel):
    """Compact election entry used in statistics."""

    id: str
    name: str
    category: ElectionCategory
    status: ElectionStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class ElectionStats(BaseModel):
    """Aggregate statistics for the organizer dashboard."""

    total_elections: int
    by_status: dict[str, int]
    by_category: dict[str, int]
    total_votes: int
    recent_elections: list[ElectionSummary]
