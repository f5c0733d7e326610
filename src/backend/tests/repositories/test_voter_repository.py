"""
Tests for voter repository.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


@pytest.mark.unit
class TestVoterRepositoryMocked:
    async def test_consume_challenge_false_when_already_consumed(self, mock_db_session) -> None:
        from repositories.voter_repository import VoterRepository

        mock_db_session.execute = AsyncMock(return_value=MagicMock(rowcount=0))

        assert await VoterRepository(mock_db_session).consume_challenge("voter-1", "123456") is False

    async def test_has_participated(self, mock_db_session) -> None:
        from repositories.voter_repository import VoterRepository

        mock_result = MagicMock()
        mock_result.scalar = MagicMock(return_value=1)
        mock_db_session.execute = AsyncMock(return_value=mock_result)

        assert await VoterRepository(mock_db_session).has_participated("voter-1", "election-1") is True


@pytest.mark.integration
class TestVoterRepository:
    async def test_challenge_lifecycle(self, db_session) -> None:
        from repositories.voter_repository import VoterRepository

        repo = VoterRepository(db_session)
        voter = await repo.create(national_id="123456789012", name="Voter-9012", age=30)
        await db_session.commit()

        expires = datetime.now(timezone.utc) + timedelta(minutes=10)
        assert await repo.set_challenge(voter.id, "042137", expires) is True
        await db_session.commit()

        assert await repo.consume_challenge(voter.id, "999999") is False
        assert await repo.consume_challenge(voter.id, "042137") is True
        await db_session.commit()
        assert await repo.consume_challenge(voter.id, "042137") is False

        stored = await repo.get_by_id(voter.id)
        assert stored.otp_code is None

    async def test_participation_is_ordered(self, db_session) -> None:
        from repositories.voter_repository import VoterRepository

        repo = VoterRepository(db_session)
        voter = await repo.create(national_id="123456789012", name="Voter-9012", age=30)
        base = datetime.now(timezone.utc)

        await repo.add_participation(voter.id, "election-b", voted_at=base + timedelta(minutes=5))
        await repo.add_participation(voter.id, "election-a", voted_at=base)
        await db_session.commit()

        stored = await repo.get_by_id(voter.id)
        assert stored.voted_election_ids == ["election-a", "election-b"]

    async def test_contacts_encrypted_at_rest(self, db_session) -> None:
        """With a key configured, phone and email are stored as ciphertext."""
        import secrets

        from sqlalchemy import text

        from core.encryption import FieldEncryption
        from repositories.voter_repository import VoterRepository

        encryption = FieldEncryption(encryption_key=secrets.token_bytes(32))

        with (
            patch("db.types.encrypt_pii", encryption.encrypt),
            patch("db.types.decrypt_pii", encryption.decrypt),
        ):
            repo = VoterRepository(db_session)
            voter = await repo.create(
                national_id="123456789012", name="Voter-9012", age=30, phone="5551234567", email="v@example.com"
            )
            await db_session.commit()

            raw = (
                await db_session.execute(text("SELECT phone, email FROM voters WHERE id = :id"), {"id": voter.id})
            ).one()
            assert raw.phone.startswith("enc:v1:")
            assert raw.email.startswith("enc:v1:")

            stored = await repo.get_by_id(voter.id)
            assert stored.phone == "5551234567"
            assert stored.email == "v@example.com"
