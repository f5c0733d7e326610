"""
Shared dependencies for API endpoints.

Organizer sessions are issued by an external session service; this module
only validates the bearer token and its organizer role.
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from core.security import ORGANIZER_ROLE, decode_token

logger = structlog.get_logger(__name__)

# Security schemes
security = HTTPBearer()


class Organizer(BaseModel):
    """Authenticated organizer identity taken from the token."""

    id: str
    role: str = ORGANIZER_ROLE


async def get_current_organizer(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Organizer:
    """
    Validate the bearer token and require the organizer role.

    Raises:
        HTTPException: 401 for a missing/invalid token, 403 for a non-organizer.
    """
    payload = decode_token(credentials.credentials, expected_type="access")

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("role") != ORGANIZER_ROLE:
        logger.warning("non_organizer_access_attempt", subject=subject)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organizer privileges required",
        )

    return Organizer(id=str(subject))
