"""
Election and candidate models.

An election is a time-bounded ballot with an ordered candidate list. The
stored status is set at creation from the window and afterwards only by
explicit organizer action.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base
from db.types import UTCDateTime, utcnow


class ElectionStatus(str, Enum):
    """Election lifecycle status."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class ElectionCategory(str, Enum):
    """Closed set of election categories."""

    NATIONAL = "national"
    STATE = "state"
    MUNICIPAL = "municipal"
    STUDENT = "student"
    CORPORATE = "corporate"
    ORGANIZATION = "organization"


class Election(Base):
    """Election definition with its voting window."""

    __tablename__ = "elections"

    __table_args__ = (Index("ix_elections_status_window", "status", "start_time", "end_time"),)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")

    # Voting window
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, index=True)

    category: Mapped[str] = mapped_column(String(20), default=ElectionCategory.NATIONAL.value, index=True)
    locality: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=ElectionStatus.UPCOMING.value, index=True)

    # Owning organizer (subject of the organizer's session token)
    created_by: Mapped[str] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    candidates: Mapped[list["Candidate"]] = relationship(
        "Candidate",
        back_populates="election",
        order_by="Candidate.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def total_votes(self) -> int:
        return sum(c.vote_count for c in self.candidates)

    def find_candidate(self, candidate_id: str) -> Optional["Candidate"]:
        """Resolve a candidate within this election's list."""
        for candidate in self.candidates:
            if candidate.id == candidate_id:
                return candidate
        return None


class Candidate(Base):
    """
    Candidate on an election's ballot.

    vote_count is incremented atomically by the ballot box, once per
    accepted vote, and never decremented.
    """

    __tablename__ = "candidates"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    election_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("elections.id", ondelete="CASCADE"),
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200))
    party: Mapped[str] = mapped_column(String(200))
    position: Mapped[int] = mapped_column(Integer, default=0)

    vote_count: Mapped[int] = mapped_column(Integer, default=0)

    election: Mapped["Election"] = relationship("Election", back_populates="candidates")
