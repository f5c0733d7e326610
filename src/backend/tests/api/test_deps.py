"""
Tests for API dependencies (deps.py).
"""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from api.deps import get_current_organizer
from core.security import create_access_token


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.unit
class TestGetCurrentOrganizer:
    """Organizer token validation."""

    async def test_valid_organizer_token(self) -> None:
        token = create_access_token({"sub": "org-42", "role": "organizer"})

        organizer = await get_current_organizer(_credentials(token))

        assert organizer.id == "org-42"
        assert organizer.role == "organizer"

    async def test_invalid_token_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_organizer(_credentials("not-a-jwt"))

        assert exc_info.value.status_code == 401

    async def test_expired_token_is_401(self) -> None:
        token = create_access_token({"sub": "org-42", "role": "organizer"}, expires_delta=timedelta(seconds=-5))

        with pytest.raises(HTTPException) as exc_info:
            await get_current_organizer(_credentials(token))

        assert exc_info.value.status_code == 401

    async def test_missing_subject_is_401(self) -> None:
        token = create_access_token({"role": "organizer"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_organizer(_credentials(token))

        assert exc_info.value.status_code == 401

    async def test_non_organizer_is_403(self) -> None:
        token = create_access_token({"sub": "voter-1", "role": "voter"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_organizer(_credentials(token))

        assert exc_info.value.status_code == 403
