"""
Voter identity model.

A voter is keyed by a 12-digit national identifier and proves control of a
contact channel with a one-time code before being allowed to vote.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base
from db.types import EncryptedString, UTCDateTime, utcnow

if TYPE_CHECKING:
    from models.voter_participation import VoterParticipation


class Voter(Base):
    """
    Voter identity record.

    Contact channels are encrypted at rest. At most one challenge is live
    at a time (otp_code + otp_expires_at); both are cleared on success.
    """

    __tablename__ = "voters"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Immutable once created
    national_id: Mapped[str] = mapped_column(String(12), unique=True, index=True)

    name: Mapped[str] = mapped_column(String(100))
    age: Mapped[int] = mapped_column(Integer)

    # Contact channels (optional, encrypted)
    phone: Mapped[Optional[str]] = mapped_column(EncryptedString(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(EncryptedString(255), nullable=True)

    # Verification
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    otp_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    otp_expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    last_verified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Elections voted in, oldest first
    participations: Mapped[list["VoterParticipation"]] = relationship(
        "VoterParticipation",
        back_populates="voter",
        order_by="VoterParticipation.voted_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def voted_election_ids(self) -> list[str]:
        """Ordered identifiers of elections this voter has voted in."""
        return [p.election_id for p in self.participations]

    @property
    def has_live_challenge(self) -> bool:
        return self.otp_code is not None and self.otp_expires_at is not None

    def __repr__(self) -> str:
        return f"<Voter(id={self.id}, verified={self.is_verified})>"
