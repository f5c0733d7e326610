"""
Organizer election management endpoints.

All routes require an organizer bearer token issued by the session service.
Destructive operations are logged with the acting organizer.
"""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import Organizer, get_current_organizer
from db.session import get_db
from schemas.converters import election_model_to_admin
from schemas.election import (
    ElectionAdmin,
    ElectionCreate,
    ElectionListResponse,
    ElectionStats,
    ElectionSummary,
    ElectionUpdate,
    StatusUpdate,
)
from services.election_catalog import ElectionCatalog

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=ElectionListResponse)
async def list_all_elections(
    organizer: Annotated[Organizer, Depends(get_current_organizer)],
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    category: Optional[str] = Query(None, description="Filter by category"),
) -> ElectionListResponse:
    """List all elections, newest first."""
    elections, total = await ElectionCatalog(db).list_elections(
        status=status_filter,
        category=category,
        page=page,
        per_page=per_page,
    )
    return ElectionListResponse(
        elections=[election_model_to_admin(e) for e in elections],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=ElectionAdmin, status_code=status.HTTP_201_CREATED)
async def create_election(
    election_data: ElectionCreate,
    organizer: Annotated[Organizer, Depends(get_current_organizer)],
    db: AsyncSession = Depends(get_db),
) -> ElectionAdmin:
    """Create an election with its candidates."""
    election = await ElectionCatalog(db).create(
        name=election_data.name,
        description=election_data.description,
        start_time=election_data.start_time,
        end_time=election_data.end_time,
        category=election_data.category,
        locality=election_data.locality,
        candidates=election_data.candidates,
        status=election_data.status,
        created_by=organizer.id,
    )
    return election_model_to_admin(election)


@router.get("/stats", response_model=ElectionStats)
async def get_election_stats(
    organizer: Annotated[Organizer, Depends(get_current_organizer)],
    db: AsyncSession = Depends(get_db),
) -> ElectionStats:
    """Dashboard statistics."""
    stats = await ElectionCatalog(db).statistics()
    return ElectionStats(
        total_elections=stats["total_elections"],
        by_status=stats["by_status"],
        by_category=stats["by_category"],
        total_votes=stats["total_votes"],
        recent_elections=[ElectionSummary.model_validate(e) for e in stats["recent_elections"]],
    )


@router.get("/{election_id}", response_model=ElectionAdmin)
async def get_election(
    election_id: str,
    organizer: Annotated[Organizer, Depends(get_current_organizer)],
    db: AsyncSession = Depends(get_db),
) -> ElectionAdmin:
    """Election detail with candidate counters."""
    election = await ElectionCatalog(db).get(election_id)
    return election_model_to_admin(election)


@router.put("/{election_id}", response_model=ElectionAdmin)
async def update_election(
    election_id: str,
    update_data: ElectionUpdate,
    organizer: Annotated[Organizer, Depends(get_current_organizer)],
    db: AsyncSession = Depends(get_db),
) -> ElectionAdmin:
    """Partially update an election."""
    changes = update_data.model_dump(exclude_unset=True)
    if "candidates" in changes:
        changes["candidates"] = update_data.candidates

    election = await ElectionCatalog(db).update(election_id, **changes)
    logger.info("admin_election_updated", election_id=election_id, organizer_id=organizer.id)
    return election_model_to_admin(election)


@router.put("/{election_id}/status", response_model=ElectionAdmin)
async def set_election_status(
    election_id: str,
    status_update: StatusUpdate,
    organizer: Annotated[Organizer, Depends(get_current_organizer)],
    db: AsyncSession = Depends(get_db),
) -> ElectionAdmin:
    """Start, stop or reset an election."""
    election = await ElectionCatalog(db).set_status(election_id, status_update.status)
    logger.info(
        "admin_election_status_set",
        election_id=election_id,
        status=election.status,
        organizer_id=organizer.id,
    )
    return election_model_to_admin(election)


@router.delete("/{election_id}")
async def delete_election(
    election_id: str,
    organizer: Annotated[Organizer, Depends(get_current_organizer)],
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Delete an election with its candidates and votes."""
    await ElectionCatalog(db).delete(election_id)
    logger.warning("admin_election_deleted", election_id=election_id, organizer_id=organizer.id)
    return {"message": "Election deleted successfully", "election_id": election_id}
