from typing import Optional, List, Dict, Set, Iterable
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from common.models import GeographicArea
from common.schemas.geography import AreaNode
from common.application.area_store import AreaStore

logger = logging.getLogger(__name__)

class AreaTree:
    """
    Read-only traversal primitives over the area hierarchy.

    Areas are addressed by ID only; every walk is an iterative frontier
    expansion with a visited set, so deep or wide trees never recurse and a
    corrupted parent cycle still terminates.
    """

    def __init__(self, session: AsyncSession, store: Optional[AreaStore] = None):
        self.session = session
        self.store = store or AreaStore(session)

    async def batch_ancestors(self, area_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        """
        Resolve parent pointers for `area_ids` and, transitively, for every
        parent reached. One round trip per tree level.

        Returns {area_id: parent_id}; roots map to None and unknown IDs are
        omitted.
        """
        parent_map: Dict[str, Optional[str]] = {}
        frontier: Set[str] = set(area_ids)
        rounds = 0

        while frontier:
            pointers = await self.store.find_parent_pointers(frontier)
            parent_map.update(pointers)
            frontier = {
                parent_id for parent_id in pointers.values()
                if parent_id is not None and parent_id not in parent_map
            }
            rounds += 1

        logger.debug(f"batch_ancestors resolved {len(parent_map)} pointers in {rounds} rounds")
        return parent_map

    async def ancestor_ids(self, area_id: str, parent_map: Optional[Dict[str, Optional[str]]] = None) -> List[str]:
        """Ancestor IDs nearest first; empty for roots and unknown IDs."""
        if parent_map is None:
            parent_map = await self.batch_ancestors([area_id])
        chain: List[str] = []
        seen = {area_id}
        current = parent_map.get(area_id)
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = parent_map.get(current)
        return chain

    async def ancestors(self, area_id: str) -> List[GeographicArea]:
        """Ancestor areas ordered from the parent up to the root."""
        chain = await self.ancestor_ids(area_id)
        if not chain:
            return []
        by_id = {area.id: area for area in await self.store.find_by_ids(chain)}
        return [by_id[aid] for aid in chain if aid in by_id]

    async def batch_descendants(self, root_ids: Iterable[str]) -> Set[str]:
        """All transitive descendants of the roots, excluding the roots themselves."""
        roots = set(root_ids)
        visited: Set[str] = set(roots)
        descendants: Set[str] = set()
        frontier: Set[str] = set(roots)

        while frontier:
            child_ids = await self.store.find_child_ids_of_many(frontier)
            frontier = set()
            for child_id in child_ids:
                if child_id in roots:
                    # A root nested under another root is still a descendant.
                    descendants.add(child_id)
                if child_id in visited:
                    continue
                visited.add(child_id)
                descendants.add(child_id)
                frontier.add(child_id)

        return descendants

    async def descendants(self, area_id: str) -> Set[str]:
        descendants = await self.batch_descendants([area_id])
        descendants.discard(area_id)
        return descendants

    async def is_descendant_of(self, child_id: str, ancestor_id: str) -> bool:
        return ancestor_id in await self.ancestor_ids(child_id)

    async def children_at_depth(self, root_id: Optional[str], depth: int) -> List[AreaNode]:
        """
        Children of `root_id` (top-level areas when None), expanded `depth`
        further levels.

        Depth counts levels below the first fetched level, so depth N returns
        N+1 levels beneath `root_id`; depth 0 is the direct children only.
        """
        top = await self.store.find_children(root_id)
        return await self.expand_levels(top, depth, exclude=[root_id] if root_id is not None else [])

    async def expand_levels(self, top: List[GeographicArea], depth: int, exclude: Iterable[str] = ()) -> List[AreaNode]:
        """Nodes for `top`, with `depth` further levels beneath them; depth 0 is `top` alone."""
        levels: List[List[GeographicArea]] = [top]
        seen: Set[str] = {a.id for a in top}
        seen.update(exclude)

        remaining = depth
        while remaining > 0 and levels[-1]:
            next_level = [
                child for child in await self.store.find_children_of_many([a.id for a in levels[-1]])
                if child.id not in seen
            ]
            seen.update(child.id for child in next_level)
            levels.append(next_level)
            remaining -= 1

        all_ids = [area.id for level in levels for area in level]
        counts = await self.store.count_children(all_ids)

        nodes: Dict[str, AreaNode] = {}
        for area in (a for level in levels for a in level):
            nodes[area.id] = AreaNode(
                id=area.id,
                name=area.name,
                area_type=area.area_type,
                parent_id=area.parent_id,
                child_count=counts.get(area.id, 0),
            )

        # Link bottom-up; the last fetched level keeps children=None.
        for level in levels[1:]:
            for area in level:
                parent = nodes.get(area.parent_id)
                if parent is not None:
                    if parent.children is None:
                        parent.children = []
                    parent.children.append(nodes[area.id])

        return [nodes[a.id] for a in top]
