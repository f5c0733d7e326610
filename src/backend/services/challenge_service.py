"""
One-time code challenge service.

Issues, stores and validates the 6-digit codes that prove a voter controls
a contact channel. A voter holds at most one live challenge; issuing a new
one discards the old, and a successful verification consumes it.

Hardening gaps (not enforced here): resend is not rate limited and there
is no cap on mismatched attempts.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ChallengeMismatch, ExpiredChallenge, NoChallenge
from core.security import generate_numeric_code, mask_value
from db.session import storage_errors
from models.voter import Voter
from repositories.voter_repository import VoterRepository
from services.email_service import EmailService, email_service
from services.sms_service import SMSService, sms_service

logger = structlog.get_logger(__name__)

CODE_LENGTH = 6

CHANNEL_SMS = "sms"
CHANNEL_EMAIL = "email"
CHANNEL_NONE = "none"


@dataclass
class IssuedChallenge:
    """Outcome of issuing a challenge."""

    code: str
    expires_at: datetime
    channel: str
    delivered: bool


class ChallengeService:
    """Issue and verify one-time codes bound to a voter identity."""

    def __init__(
        self,
        db: AsyncSession,
        sms: Optional[SMSService] = None,
        email: Optional[EmailService] = None,
    ):
        self.db = db
        self.voters = VoterRepository(db)
        self.sms = sms or sms_service
        self.email = email or email_service

    @property
    def expiry_window(self) -> timedelta:
        return timedelta(minutes=settings.SMS_VERIFICATION_CODE_EXPIRY_MINUTES)

    async def issue(self, voter: Voter, now: Optional[datetime] = None) -> IssuedChallenge:
        """
        Generate and store a fresh code, then dispatch it.

        The code is committed before dispatch so a delivered code is always
        the one on record. Delivery failures do not fail issuance.
        """
        now = now or datetime.now(timezone.utc)
        code = generate_numeric_code(CODE_LENGTH)
        expires_at = now + self.expiry_window

        with storage_errors("issue_challenge"):
            await self.voters.set_challenge(voter.id, code, expires_at)
            await self.db.commit()

        channel, delivered = await self.dispatch(voter, code)

        logger.info(
            "challenge_issued",
            voter_id=voter.id,
            channel=channel,
            delivered=delivered,
            expires_at=expires_at.isoformat(),
        )
        return IssuedChallenge(code=code, expires_at=expires_at, channel=channel, delivered=delivered)

    async def resend(self, voter: Voter, now: Optional[datetime] = None) -> IssuedChallenge:
        """Reissue a challenge, discarding the old one and restarting the window."""
        return await self.issue(voter, now=now)

    async def verify(self, voter: Voter, code: str, now: Optional[datetime] = None) -> bool:
        """
        Check a submitted code and consume the challenge on success.

        Raises:
            NoChallenge: nothing stored, or already consumed by another request
            ExpiredChallenge: the expiry has passed
            ChallengeMismatch: the code differs
        """
        now = now or datetime.now(timezone.utc)

        if not voter.has_live_challenge:
            raise NoChallenge()

        if now > voter.otp_expires_at:
            logger.info("challenge_expired", voter_id=voter.id)
            raise ExpiredChallenge()

        if not secrets.compare_digest(voter.otp_code.encode(), (code or "").encode()):
            logger.info("challenge_mismatch", voter_id=voter.id)
            raise ChallengeMismatch()

        with storage_errors("verify_challenge"):
            consumed = await self.voters.consume_challenge(voter.id, voter.otp_code)
            if not consumed:
                await self.db.rollback()
                raise NoChallenge()
            await self.db.commit()

        logger.info("challenge_verified", voter_id=voter.id)
        return True

    async def dispatch(self, voter: Voter, code: str) -> tuple[str, bool]:
        """
        Best-effort delivery: SMS when a phone is on file, else email.

        Returns the channel attempted and whether the gateway accepted it.
        Gateway errors are logged and swallowed; the code stays valid.
        """
        if voter.phone:
            channel = CHANNEL_SMS
            destination = voter.phone
        elif voter.email:
            channel = CHANNEL_EMAIL
            destination = voter.email
        else:
            logger.warning("challenge_no_contact_channel", voter_id=voter.id)
            return CHANNEL_NONE, False

        try:
            if channel == CHANNEL_SMS:
                delivered = await self.sms.send_verification_code(destination, code)
            else:
                delivered = await self.email.send_verification_code(destination, code)
        except Exception as e:
            logger.error(
                "challenge_dispatch_error",
                voter_id=voter.id,
                channel=channel,
                to=mask_value(destination),
                error=str(e),
            )
            return channel, False

        if not delivered:
            logger.warning("challenge_dispatch_failed", voter_id=voter.id, channel=channel)
        return channel, delivered
