from typing import Optional, List, Dict, Set
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from common.core.config import settings
from common.models import GeographicArea
from common.schemas.auth import AuthContext
from common.schemas.authorization import AccessLevel, AreaAccessRead, AuthorizationInfo
from common.schemas.geography import GeographicAreaRead, GeographicAreaCreate, AreaNode
from common.schemas.pagination import PaginatedResponse
from common.services.validation import validate_area_id, validate_batch, validate_depth
from common.application.area_store import AreaStore
from common.application.area_tree import AreaTree
from common.application.rule_service import RuleService
from common.application.access_evaluator import AccessEvaluator
from common.application.authorization_summarizer import AuthorizationSummarizer
from common.application.effective_filter import EffectiveFilterResolver
from common.exceptions import NotFound

logger = logging.getLogger(__name__)

class GeographicAreaService:
    """Area reads for one caller, filtered through their geographic authorization."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = AreaStore(session)
        self.tree = AreaTree(session, self.store)
        self.rules = RuleService(session)
        self.evaluator = AccessEvaluator(session, self.tree, self.rules)
        self.summarizer = AuthorizationSummarizer(session, self.tree, self.rules)
        self.resolver = EffectiveFilterResolver(session, self.tree)

    async def _to_reads(self, areas: List[GeographicArea]) -> List[GeographicAreaRead]:
        counts = await self.store.count_children([a.id for a in areas])
        return [
            GeographicAreaRead(
                id=area.id,
                name=area.name,
                area_type=area.area_type,
                parent_id=area.parent_id,
                child_count=counts.get(area.id, 0),
            )
            for area in areas
        ]

    async def _require_area(self, area_id: str) -> GeographicArea:
        area = await self.store.get_area(validate_area_id(area_id))
        if not area:
            raise NotFound("Geographic area not found")
        return area

    async def get_area(self, ctx: AuthContext, area_id: str) -> GeographicAreaRead:
        area = await self._require_area(area_id)
        await self.evaluator.require_access(ctx, area.id, AccessLevel.READ_ONLY)
        return (await self._to_reads([area]))[0]

    async def get_children(self, ctx: AuthContext, area_id: str) -> List[GeographicAreaRead]:
        """
        Children of an area the caller can at least see. Restricted callers
        only get the children they hold FULL or READ_ONLY access to.
        """
        area = await self._require_area(area_id)
        await self.evaluator.require_access(ctx, area.id, AccessLevel.READ_ONLY)

        children = await self.store.find_children(area.id)
        info = await self.summarizer.summarize(ctx)
        if info.has_restrictions:
            visible = info.visible_area_ids()
            children = [c for c in children if c.id in visible]
        return await self._to_reads(children)

    async def get_ancestors(self, ctx: AuthContext, area_id: str) -> List[GeographicAreaRead]:
        area = await self._require_area(area_id)
        await self.evaluator.require_access(ctx, area.id, AccessLevel.READ_ONLY)
        return await self._to_reads(await self.tree.ancestors(area.id))

    async def get_access(self, ctx: AuthContext, area_id: str) -> AreaAccessRead:
        area = await self._require_area(area_id)
        rules = await self.rules.list_rules(ctx.user_id)
        level = await self.evaluator.evaluate(ctx, area.id, rules)
        info = await self.summarizer.summarize(ctx, rules)
        return AreaAccessRead(
            geographic_area_id=area.id,
            access_level=level,
            is_ancestor=level != AccessLevel.NONE and info.is_ancestor_context(area.id),
            has_restrictions=info.has_restrictions,
        )

    async def create_area(self, ctx: AuthContext, area_in: GeographicAreaCreate) -> GeographicAreaRead:
        """Restricted callers may only create beneath a parent they hold FULL access to."""
        parent_id = None
        if area_in.parent_id is not None:
            parent_id = (await self._require_area(area_in.parent_id)).id
        await self.evaluator.validate_create_area(ctx, parent_id)

        area = GeographicArea(name=area_in.name, area_type=area_in.area_type, parent_id=parent_id)
        self.session.add(area)
        await self.session.commit()
        await self.session.refresh(area)

        logger.info(f"User {ctx.user_id} created {area.area_type.value} area {area.id} under {parent_id}")
        return (await self._to_reads([area]))[0]

    async def list_areas(
        self,
        ctx: AuthContext,
        geographic_area_id: Optional[str] = None,
        depth: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> PaginatedResponse[GeographicAreaRead]:
        """
        Flat, authorization-filtered listing with ancestor context.

        With a filter area, the listing holds the area, its ancestors and its
        subtree; without one, the caller's whole visible set. `depth` bounds
        the subtree using the same level counting as the tree endpoint.
        """
        PaginatedResponse.validate_window(skip, limit)
        if depth is not None:
            validate_depth(depth)
        if geographic_area_id is not None:
            geographic_area_id = validate_area_id(geographic_area_id)

        info = await self.summarizer.summarize(ctx)
        area_ids = await self.resolver.resolve_for_listing(geographic_area_id, info)

        if depth is not None:
            in_depth: Set[str] = set(_flatten(await self.tree.children_at_depth(geographic_area_id, depth)))
            if geographic_area_id is not None:
                in_depth.add(geographic_area_id)
                in_depth.update(await self.tree.ancestor_ids(geographic_area_id))
            area_ids = in_depth if area_ids is None else area_ids & in_depth

        if area_ids is None:
            areas = await self.store.find_all()
        else:
            areas = await self.store.find_by_ids(area_ids)
        logger.debug(f"Listing for user {ctx.user_id} matched {len(areas)} areas")

        window = areas[skip:skip + limit]
        return PaginatedResponse[GeographicAreaRead](
            items=await self._to_reads(window),
            total=len(areas),
            skip=skip,
            limit=limit,
            has_more=(skip + len(window)) < len(areas),
        )

    async def _tree_root(self, ctx: AuthContext, root_id: Optional[str]) -> Optional[str]:
        if root_id is None:
            return None
        root = await self._require_area(root_id)
        await self.evaluator.require_access(ctx, root.id, AccessLevel.READ_ONLY)
        return root.id

    async def get_tree(self, ctx: AuthContext, root_id: Optional[str] = None, depth: int = 0) -> List[AreaNode]:
        """Depth-limited forest under `root_id` (the top level when None), pruned to visible areas."""
        validate_depth(depth)
        root_id = await self._tree_root(ctx, root_id)

        forest = await self.tree.children_at_depth(root_id, depth)
        info = await self.summarizer.summarize(ctx)
        if not info.has_restrictions:
            return forest
        return _prune(forest, info)

    async def get_tree_page(
        self,
        ctx: AuthContext,
        root_id: Optional[str] = None,
        depth: int = 0,
        skip: int = 0,
        limit: int = 100
    ) -> PaginatedResponse[AreaNode]:
        """
        One page of the forest. The visible top level is paged first and only
        the page's nodes are expanded to `depth`, so `total` counts top-level
        nodes and nested children never spill across pages.
        """
        PaginatedResponse.validate_window(skip, limit)
        validate_depth(depth)
        root_id = await self._tree_root(ctx, root_id)

        top = await self.store.find_children(root_id)
        info = await self.summarizer.summarize(ctx)
        if info.has_restrictions:
            visible = info.visible_area_ids()
            top = [area for area in top if area.id in visible]

        window = top[skip:skip + limit]
        forest = await self.tree.expand_levels(window, depth, exclude=[root_id] if root_id is not None else [])
        if info.has_restrictions:
            forest = _prune(forest, info)

        return PaginatedResponse[AreaNode](
            items=forest,
            total=len(top),
            skip=skip,
            limit=limit,
            has_more=(skip + len(window)) < len(top),
        )

    async def batch_ancestors(self, ctx: AuthContext, area_ids: List[str]) -> Dict[str, Optional[str]]:
        """Parent pointers for the IDs and their ancestors, limited to areas the caller can see."""
        ids = validate_batch(area_ids, settings.MAX_BATCH_AREA_IDS)
        parent_map = await self.tree.batch_ancestors(ids)

        info = await self.summarizer.summarize(ctx)
        if info.has_restrictions:
            visible = info.visible_area_ids()
            parent_map = {area_id: parent for area_id, parent in parent_map.items() if area_id in visible}
        return parent_map

    async def batch_details(self, ctx: AuthContext, area_ids: List[str]) -> Dict[str, GeographicAreaRead]:
        ids = validate_batch(area_ids, settings.MAX_BATCH_AREA_IDS)
        areas = await self.store.find_by_ids(ids)

        info = await self.summarizer.summarize(ctx)
        if info.has_restrictions:
            visible = info.visible_area_ids()
            areas = [a for a in areas if a.id in visible]
        return {read.id: read for read in await self._to_reads(areas)}

def _flatten(forest: List[AreaNode]) -> List[str]:
    ids: List[str] = []
    stack = list(forest)
    while stack:
        node = stack.pop()
        ids.append(node.id)
        stack.extend(node.children or [])
    return ids

def _prune(forest: List[AreaNode], info: AuthorizationInfo) -> List[AreaNode]:
    visible = info.visible_area_ids()
    pruned = [node for node in forest if node.id in visible]
    stack = list(pruned)
    while stack:
        node = stack.pop()
        if node.children is not None:
            node.children = [child for child in node.children if child.id in visible]
            stack.extend(node.children)
    return pruned
