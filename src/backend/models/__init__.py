"""Database models module."""

from models.election import Candidate, Election, ElectionCategory, ElectionStatus
from models.vote import Vote
from models.voter import Voter
from models.voter_participation import VoterParticipation

__all__ = [
    "Voter",
    "VoterParticipation",
    "Election",
    "ElectionStatus",
    "ElectionCategory",
    "Candidate",
    "Vote",
]
