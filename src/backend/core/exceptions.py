"""
Domain errors raised by the voting-integrity services.

Every error carries a stable machine-readable ``code`` and the HTTP status
the transport layer should answer with. None of them is fatal to the
process, and the services never retry on the caller's behalf.
"""

from fastapi import status


class VotingError(Exception):
    """Base exception for voting-integrity rejections."""

    code: str = "VotingError"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request rejected"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Identity / challenge


class InvalidIdentifier(VotingError):
    code = "InvalidIdentifier"
    default_message = "National identifier must be 12 digits"


class InvalidAge(VotingError):
    code = "InvalidAge"
    default_message = "You must be 18 or older to vote"


class NoChallenge(VotingError):
    code = "NoChallenge"
    default_message = "No verification code is pending for this identity"


class ExpiredChallenge(VotingError):
    code = "ExpiredChallenge"
    default_message = "Verification code has expired"


class ChallengeMismatch(VotingError):
    code = "ChallengeMismatch"
    default_message = "Verification code does not match"


class IdentityNotFound(VotingError):
    code = "IdentityNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Voter not found"


class NotVerified(VotingError):
    code = "NotVerified"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Voter not verified. Please complete code verification."


# Elections


class ElectionNotFound(VotingError):
    code = "ElectionNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Election not found"


class InvalidWindow(VotingError):
    code = "InvalidWindow"
    default_message = "End time must be after start time and in the future"


class MissingCandidates(VotingError):
    code = "MissingCandidates"
    default_message = "At least one candidate is required"


class InvalidCandidate(VotingError):
    code = "InvalidCandidate"
    default_message = "Every candidate must have both a name and a party"


class InvalidStatus(VotingError):
    code = "InvalidStatus"
    default_message = "Invalid status. Must be: upcoming, active, or completed"


class CandidatesLocked(VotingError):
    code = "CandidatesLocked"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Candidates cannot be replaced after votes have been cast"


# Ballot box


class ElectionNotVotable(VotingError):
    code = "ElectionNotVotable"
    default_message = "This election is not currently accepting votes"


class CandidateNotFound(VotingError):
    code = "CandidateNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Candidate not found in this election"


class DuplicateVote(VotingError):
    code = "DuplicateVote"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have already voted in this election"


# Infrastructure


class StorageUnavailable(VotingError):
    """Transient storage failure; the caller may retry."""

    code = "StorageUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage is temporarily unavailable. Please retry."
