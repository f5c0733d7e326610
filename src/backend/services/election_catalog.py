"""
Election catalog service.

Owns election definitions: the voting window, the ordered candidate list
and the lifecycle status. The stored status is computed from the window at
creation and afterwards changes only through explicit organizer action.

Vote eligibility requires BOTH an active stored status AND the current time
falling inside [start_time, end_time].
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    CandidatesLocked,
    ElectionNotFound,
    InvalidCandidate,
    InvalidStatus,
    InvalidWindow,
    MissingCandidates,
)
from db.session import storage_errors
from models.election import Election, ElectionCategory, ElectionStatus
from repositories.election_repository import ElectionRepository
from repositories.vote_repository import VoteRepository

logger = structlog.get_logger(__name__)

RECENT_ELECTIONS_LIMIT = 5


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_status(status: Any) -> ElectionStatus:
    """Coerce a status value or raise InvalidStatus."""
    try:
        return ElectionStatus(status)
    except ValueError:
        raise InvalidStatus() from None


def normalize_candidates(candidates: Optional[Iterable[Any]]) -> list[tuple[str, str]]:
    """
    Validate a candidate list into (name, party) pairs.

    Accepts mappings or objects with ``name``/``party`` attributes.
    """
    items = list(candidates or [])
    if not items:
        raise MissingCandidates()

    normalized: list[tuple[str, str]] = []
    for item in items:
        if isinstance(item, dict):
            name, party = item.get("name"), item.get("party")
        else:
            name, party = getattr(item, "name", None), getattr(item, "party", None)

        name = (name or "").strip()
        party = (party or "").strip()
        if not name or not party:
            raise InvalidCandidate()
        normalized.append((name, party))

    return normalized


class ElectionCatalog:
    """Create, query and administer elections."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.elections = ElectionRepository(db)
        self.votes = VoteRepository(db)

    @staticmethod
    def derive_status(start_time: datetime, end_time: datetime, now: Optional[datetime] = None) -> ElectionStatus:
        """Status implied by the window alone."""
        now = now or datetime.now(timezone.utc)
        if as_utc(start_time) > now:
            return ElectionStatus.UPCOMING
        if now <= as_utc(end_time):
            return ElectionStatus.ACTIVE
        return ElectionStatus.COMPLETED

    @staticmethod
    def is_votable(election: Election, now: Optional[datetime] = None) -> bool:
        """True only when stored status is active AND now lies within the window."""
        now = now or datetime.now(timezone.utc)
        if election.status != ElectionStatus.ACTIVE.value:
            return False
        return as_utc(election.start_time) <= now <= as_utc(election.end_time)

    async def create(
        self,
        name: str,
        start_time: datetime,
        end_time: datetime,
        candidates: Iterable[Any],
        created_by: str,
        description: str = "",
        category: ElectionCategory | str = ElectionCategory.NATIONAL,
        locality: Optional[str] = None,
        status: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Election:
        """
        Create an election.

        Raises:
            InvalidWindow: end <= start, or end not strictly in the future
            MissingCandidates: empty candidate list
            InvalidCandidate: a candidate lacks a name or a party
            InvalidStatus: the explicit status override is unknown
        """
        now = now or datetime.now(timezone.utc)
        start_time, end_time = as_utc(start_time), as_utc(end_time)

        if end_time <= start_time or end_time <= now:
            raise InvalidWindow()

        pairs = normalize_candidates(candidates)
        initial_status = parse_status(status) if status is not None else self.derive_status(start_time, end_time, now)

        with storage_errors("create_election"):
            election = await self.elections.create(
                name=name.strip(),
                description=(description or "").strip(),
                start_time=start_time,
                end_time=end_time,
                category=ElectionCategory(category).value,
                locality=locality,
                status=initial_status.value,
                created_by=created_by,
                candidates=pairs,
            )
            await self.db.commit()
            election = await self.elections.get_by_id(election.id) or election

        logger.info(
            "election_created",
            election_id=election.id,
            status=initial_status.value,
            candidates=len(pairs),
            created_by=created_by,
        )
        return election

    async def get(self, election_id: str) -> Election:
        """Get an election or raise ElectionNotFound."""
        with storage_errors("get_election"):
            election = await self.elections.get_by_id(election_id)
        if election is None:
            raise ElectionNotFound()
        return election

    async def set_status(self, election_id: str, status: Any) -> Election:
        """Explicit lifecycle transition; not checked against the window."""
        new_status = parse_status(status)

        with storage_errors("set_election_status"):
            updated = await self.elections.update_status(election_id, new_status.value)
            if not updated:
                await self.db.rollback()
                raise ElectionNotFound()
            await self.db.commit()

        logger.info("election_status_set", election_id=election_id, status=new_status.value)
        return await self.get(election_id)

    async def update(
        self,
        election_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        category: Optional[ElectionCategory | str] = None,
        locality: Optional[str] = None,
        candidates: Optional[Iterable[Any]] = None,
    ) -> Election:
        """
        Partially update an election.

        Raises:
            ElectionNotFound: no such election
            InvalidWindow: resulting end <= start
            MissingCandidates / InvalidCandidate: bad replacement list
            CandidatesLocked: replacing candidates after votes were recorded
        """
        election = await self.get(election_id)

        new_start = as_utc(start_time) if start_time is not None else as_utc(election.start_time)
        new_end = as_utc(end_time) if end_time is not None else as_utc(election.end_time)
        if new_end <= new_start:
            raise InvalidWindow("End time must be after start time")

        pairs = normalize_candidates(candidates) if candidates is not None else None

        with storage_errors("update_election"):
            if pairs is not None:
                # Held until commit; a concurrent cast either finished before
                # the count below or fails its candidate foreign key after it
                await self.elections.lock(election_id)
                if await self.votes.count_by_election(election_id) > 0:
                    await self.db.rollback()
                    raise CandidatesLocked()

            if name is not None:
                election.name = name.strip()
            if description is not None:
                election.description = description.strip()
            if category is not None:
                election.category = ElectionCategory(category).value
            if locality is not None:
                election.locality = locality
            election.start_time = new_start
            election.end_time = new_end

            try:
                if pairs is not None:
                    await self.elections.replace_candidates(election, pairs)
                await self.db.commit()
            except IntegrityError as e:
                # votes.candidate_id is ON DELETE RESTRICT
                await self.db.rollback()
                logger.warning("candidate_replace_blocked_by_votes", election_id=election_id)
                raise CandidatesLocked() from e

        logger.info("election_updated", election_id=election_id, candidates_replaced=pairs is not None)
        return await self.get(election_id)

    async def delete(self, election_id: str) -> None:
        """Delete an election with its candidates, votes and participation rows."""
        with storage_errors("delete_election"):
            deleted = await self.elections.delete(election_id)
            if not deleted:
                await self.db.rollback()
                raise ElectionNotFound()
            await self.db.commit()

        logger.info("election_deleted", election_id=election_id)

    async def list_votable(self, now: Optional[datetime] = None) -> list[Election]:
        """Elections currently accepting votes."""
        now = now or datetime.now(timezone.utc)
        with storage_errors("list_votable"):
            return await self.elections.list_open(ElectionStatus.ACTIVE.value, now)

    async def list_elections(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Election], int]:
        """Newest-first paginated listing filtered by stored status."""
        status_value = parse_status(status).value if status else None
        with storage_errors("list_elections"):
            return await self.elections.list_elections(
                page=page,
                per_page=per_page,
                status=status_value,
                category=category,
            )

    async def statistics(self) -> dict[str, Any]:
        """Totals per status and category, total votes, and recent elections."""
        with storage_errors("election_statistics"):
            by_status = await self.elections.count_by_status()
            by_category = await self.elections.count_by_category()
            total_votes = await self.votes.count_all()
            recent = await self.elections.get_recent(RECENT_ELECTIONS_LIMIT)

        return {
            "total_elections": sum(by_status.values()),
            "by_status": {s.value: by_status.get(s.value, 0) for s in ElectionStatus},
            "by_category": by_category,
            "total_votes": total_votes,
            "recent_elections": recent,
        }
