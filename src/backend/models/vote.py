"""
Vote model.

Immutable record of one voter's choice in one election. The unique
constraint on (election_id, voter_id) is the authoritative guard against
double voting.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.types import UTCDateTime, utcnow

VOTE_UNIQUE_CONSTRAINT = "uq_votes_election_voter"


class Vote(Base):
    """A cast vote. Created once per successful cast; never updated."""

    __tablename__ = "votes"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    election_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("elections.id", ondelete="CASCADE"),
    )
    voter_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("voters.id", ondelete="CASCADE"),
        index=True,
    )
    # RESTRICT: removing a candidate must never take recorded votes with it
    candidate_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("candidates.id", ondelete="RESTRICT"),
    )

    cast_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("election_id", "voter_id", name=VOTE_UNIQUE_CONSTRAINT),
        Index("ix_votes_election_candidate", "election_id", "candidate_id"),
    )
