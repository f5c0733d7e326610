"""Schemas module initialization."""

from schemas.election import (
    ElectionAdmin,
    ElectionCreate,
    ElectionPublic,
    ElectionResults,
    ElectionStats,
    ElectionUpdate,
)
from schemas.vote import VoteCreate, VoteReceipt, VoteStatus
from schemas.voter import ChallengeIssued, ChallengeRequest, IdentitySummary, VoterProfile

__all__ = [
    "ChallengeRequest",
    "ChallengeIssued",
    "IdentitySummary",
    "VoterProfile",
    "ElectionCreate",
    "ElectionUpdate",
    "ElectionPublic",
    "ElectionAdmin",
    "ElectionResults",
    "ElectionStats",
    "VoteCreate",
    "VoteReceipt",
    "VoteStatus",
]
