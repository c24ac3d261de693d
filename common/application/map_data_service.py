from typing import Optional, List
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from common.core.config import settings
from common.schemas.auth import AuthContext
from common.schemas.authorization import AccessLevel
from common.schemas.geography import VenueMarker
from common.services.validation import validate_area_id, validate_batch
from common.application.area_tree import AreaTree
from common.application.rule_service import RuleService
from common.application.access_evaluator import AccessEvaluator
from common.application.authorization_summarizer import AuthorizationSummarizer
from common.application.effective_filter import EffectiveFilterResolver
from common.application.set_expander import ScalableSetExpander
from common.exceptions import NotFound

logger = logging.getLogger(__name__)

class MapDataService:
    """
    Venue markers for the map. Area scoping is pushed into the venue query as
    a recursive expansion, so large subtrees never become literal ID lists.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tree = AreaTree(session)
        self.rules = RuleService(session)
        self.evaluator = AccessEvaluator(session, self.tree, self.rules)
        self.summarizer = AuthorizationSummarizer(session, self.tree, self.rules)
        self.resolver = EffectiveFilterResolver(session, self.tree)
        self.expander = ScalableSetExpander(session)

    async def venue_markers(self, ctx: AuthContext, geographic_area_ids: Optional[List[str]] = None) -> List[VenueMarker]:
        rules = await self.rules.list_rules(ctx.user_id)
        info = await self.summarizer.summarize(ctx, rules)

        roots = None
        if geographic_area_ids:
            roots = validate_batch(geographic_area_ids, settings.MAX_BATCH_AREA_IDS)
            await self.resolver.check_roots(roots, info)

        venues = await self.expander.venues(roots, rules if info.has_restrictions else None)
        logger.debug(f"Map query for user {ctx.user_id} over {len(roots or [])} roots returned {len(venues)} venues")
        return [VenueMarker.model_validate(v) for v in venues]

    async def area_venues(self, ctx: AuthContext, area_id: str) -> List[VenueMarker]:
        """Venues in an area's subtree; requires FULL access to the area."""
        area_id = validate_area_id(area_id)
        if not await self.tree.store.exists_area(area_id):
            raise NotFound("Geographic area not found")
        await self.evaluator.require_access(ctx, area_id, AccessLevel.FULL)

        rules = await self.rules.list_rules(ctx.user_id)
        venues = await self.expander.venues([area_id], rules or None)
        return [VenueMarker.model_validate(v) for v in venues]
