from typing import Optional, List, Dict, Iterable
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from common.core.config import settings
from common.models import GeographicArea
from common.services.validation import chunked

logger = logging.getLogger(__name__)

class AreaStore:
    """
    Storage contract for the area hierarchy: lookups by ID, by parent pointer
    and by ID set. Every `IN (...)` is bound, and split so no single statement
    carries more than MAX_QUERY_PARAMETERS literal IDs.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def chunk_size(self) -> int:
        return settings.MAX_QUERY_PARAMETERS

    async def get_area(self, area_id: str) -> Optional[GeographicArea]:
        stmt = select(GeographicArea).where(GeographicArea.id == area_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def exists_area(self, area_id: str) -> bool:
        stmt = select(func.count()).select_from(GeographicArea).where(GeographicArea.id == area_id)
        return ((await self.session.execute(stmt)).scalar() or 0) > 0

    async def find_parent(self, area_id: str) -> Optional[str]:
        stmt = select(GeographicArea.parent_id).where(GeographicArea.id == area_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def find_children(self, area_id: Optional[str]) -> List[GeographicArea]:
        """Children of `area_id`, or the top-level areas when `area_id` is None."""
        stmt = select(GeographicArea)
        if area_id is None:
            stmt = stmt.where(GeographicArea.parent_id.is_(None))
        else:
            stmt = stmt.where(GeographicArea.parent_id == area_id)
        stmt = stmt.order_by(GeographicArea.name, GeographicArea.id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def find_children_of_many(self, parent_ids: Iterable[str]) -> List[GeographicArea]:
        children: List[GeographicArea] = []
        for batch in chunked(parent_ids, self.chunk_size):
            stmt = (
                select(GeographicArea)
                .where(GeographicArea.parent_id.in_(batch))
                .order_by(GeographicArea.name, GeographicArea.id)
            )
            children.extend((await self.session.execute(stmt)).scalars().all())
        return children

    async def find_child_ids_of_many(self, parent_ids: Iterable[str]) -> List[str]:
        child_ids: List[str] = []
        for batch in chunked(parent_ids, self.chunk_size):
            stmt = select(GeographicArea.id).where(GeographicArea.parent_id.in_(batch))
            child_ids.extend((await self.session.execute(stmt)).scalars().all())
        return child_ids

    async def find_parent_pointers(self, area_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        """Map of id -> parent_id for the given IDs that exist."""
        pointers: Dict[str, Optional[str]] = {}
        for batch in chunked(area_ids, self.chunk_size):
            stmt = select(GeographicArea.id, GeographicArea.parent_id).where(GeographicArea.id.in_(batch))
            for row in await self.session.execute(stmt):
                pointers[row.id] = row.parent_id
        return pointers

    async def find_by_ids(self, area_ids: Iterable[str]) -> List[GeographicArea]:
        areas: List[GeographicArea] = []
        for batch in chunked(area_ids, self.chunk_size):
            stmt = select(GeographicArea).where(GeographicArea.id.in_(batch))
            areas.extend((await self.session.execute(stmt)).scalars().all())
        areas.sort(key=lambda a: (a.name, a.id))
        return areas

    async def find_all(self) -> List[GeographicArea]:
        stmt = select(GeographicArea).order_by(GeographicArea.name, GeographicArea.id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def count_children(self, parent_ids: Iterable[str]) -> Dict[str, int]:
        """Child counts keyed by parent; parents without children map to 0."""
        counts: Dict[str, int] = {}
        for batch in chunked(parent_ids, self.chunk_size):
            for pid in batch:
                counts.setdefault(pid, 0)
            stmt = (
                select(GeographicArea.parent_id, func.count(GeographicArea.id))
                .where(GeographicArea.parent_id.in_(batch))
                .group_by(GeographicArea.parent_id)
            )
            for parent_id, count in (await self.session.execute(stmt)).all():
                counts[parent_id] = count
        return counts
