"""
Voter participation model.

Records WHICH elections a voter took part in and WHEN. The choice itself
lives in the votes table.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base
from db.types import UTCDateTime, utcnow

if TYPE_CHECKING:
    from models.voter import Voter


class VoterParticipation(Base):
    """One row per (voter, election) pair, appended when a vote is cast."""

    __tablename__ = "voter_participation"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    voter_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("voters.id", ondelete="CASCADE"),
        index=True,
    )

    election_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("elections.id", ondelete="CASCADE"),
        index=True,
    )

    voted_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    voter: Mapped["Voter"] = relationship("Voter", back_populates="participations")

    __table_args__ = (
        UniqueConstraint("voter_id", "election_id", name="uq_voter_participation_voter_election"),
        Index("ix_voter_participation_voter_voted", "voter_id", "voted_at"),
    )
